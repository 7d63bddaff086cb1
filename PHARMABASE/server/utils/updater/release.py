from __future__ import annotations

import os
import time
from typing import Any

import httpx
from tqdm import tqdm

from PHARMABASE.server.database.database import default_database_path
from PHARMABASE.server.database.sqlite import SQLiteRepository
from PHARMABASE.server.utils.configurations import (
    DatabaseSettings,
    ExternalDataSettings,
    server_settings,
)
from PHARMABASE.server.utils.constants import (
    GITHUB_API_BASE_URL,
    GITHUB_DOWNLOAD_BASE_URL,
)
from PHARMABASE.server.utils.logger import logger


###############################################################################
class DrugBankReleaseDownloader:
    """Fetch a prebuilt DrugBank store published as a GitHub release asset.

    Without a version the latest release is resolved through the GitHub API;
    a tagged version maps straight to its download URL. The asset is streamed
    into a temporary file next to the store and swapped in only once the
    transfer completes.
    """

    MAX_RETRIES = 3
    RETRY_STATUS = {429, 500, 502, 503, 504}
    BACKOFF_TIME = (0.8, 1.6, 3.2)

    def __init__(
        self,
        settings: ExternalDataSettings | None = None,
        db_path: str | None = None,
        *,
        database_settings: DatabaseSettings | None = None,
        http_client: httpx.Client | None = None,
    ) -> None:
        self.settings = settings or server_settings.external_data
        self.database_settings = database_settings or server_settings.database
        self.db_path = db_path or default_database_path(self.database_settings)
        default_headers = {"User-Agent": "PHARMABASE/1.0"}
        if http_client is None:
            self.http_client = httpx.Client(
                timeout=self.settings.download_timeout,
                follow_redirects=True,
                headers=default_headers,
            )
        else:
            self.http_client = http_client
        self.owns_client = http_client is None

    # -------------------------------------------------------------------------
    def close(self) -> None:
        if self.owns_client:
            self.http_client.close()

    # -------------------------------------------------------------------------
    def wait_before_retry(self, attempt: int) -> None:
        time.sleep(self.BACKOFF_TIME[min(attempt, len(self.BACKOFF_TIME) - 1)])

    # -------------------------------------------------------------------------
    def fetch_release_metadata(self) -> dict[str, Any]:
        url = (
            f"{GITHUB_API_BASE_URL}/repos/{self.settings.release_repository}"
            "/releases/latest"
        )
        response = self.http_client.get(
            url, headers={"Accept": "application/vnd.github+json"}
        )
        response.raise_for_status()
        payload = response.json()
        if not isinstance(payload, dict):
            raise RuntimeError("Unexpected payload while resolving latest release")
        return payload

    # -------------------------------------------------------------------------
    def resolve_asset(self, version: str | None = None) -> dict[str, Any]:
        asset_name = self.settings.release_asset_name
        if version:
            return {
                "tag_name": version,
                "name": asset_name,
                "size": None,
                "url": (
                    f"{GITHUB_DOWNLOAD_BASE_URL}/{self.settings.release_repository}"
                    f"/releases/download/{version}/{asset_name}"
                ),
            }
        release = self.fetch_release_metadata()
        for asset in release.get("assets") or []:
            if isinstance(asset, dict) and asset.get("name") == asset_name:
                return {
                    "tag_name": release.get("tag_name"),
                    "name": asset_name,
                    "size": asset.get("size"),
                    "url": asset.get("browser_download_url"),
                }
        raise RuntimeError(f"Release asset {asset_name} not found in latest release")

    # -------------------------------------------------------------------------
    def stream_to_file(self, url: str, destination: str, total_size: int | None) -> int:
        written = 0
        with self.http_client.stream("GET", url) as response:
            response.raise_for_status()
            if not total_size:
                try:
                    total_size = int(response.headers.get("Content-Length", 0) or 0)
                except (TypeError, ValueError):
                    total_size = 0
            with (
                open(destination, "wb") as output,
                tqdm(
                    total=total_size or None,
                    unit="B",
                    unit_scale=True,
                    desc=self.settings.release_asset_name,
                    ncols=80,
                ) as progress,
            ):
                for chunk in response.iter_bytes(self.settings.download_chunk_size):
                    if chunk:
                        output.write(chunk)
                        written += len(chunk)
                        progress.update(len(chunk))
        return written

    # -------------------------------------------------------------------------
    def download_with_retries(self, url: str, destination: str, total_size: int | None) -> int:
        attempt = 0
        last_error: Exception | None = None
        while attempt < self.MAX_RETRIES:
            try:
                return self.stream_to_file(url, destination, total_size)
            except httpx.HTTPStatusError as exc:
                last_error = exc
                if (
                    exc.response is not None
                    and exc.response.status_code in self.RETRY_STATUS
                    and attempt + 1 < self.MAX_RETRIES
                ):
                    self.wait_before_retry(attempt)
                    attempt += 1
                    continue
                break
            except httpx.RequestError as exc:
                last_error = exc
                if attempt + 1 < self.MAX_RETRIES:
                    self.wait_before_retry(attempt)
                    attempt += 1
                    continue
                break
        if last_error is not None:
            raise RuntimeError("Failed to download DrugBank database release") from last_error
        raise RuntimeError("Failed to download DrugBank database release")

    # -------------------------------------------------------------------------
    def download(self, version: str | None = None) -> dict[str, Any]:
        try:
            asset = self.resolve_asset(version)
        except httpx.HTTPError as exc:
            raise RuntimeError("Failed to resolve DrugBank database release") from exc
        url = asset.get("url")
        if not url:
            raise RuntimeError("Release asset has no download URL")
        logger.info(
            "Downloading DrugBank database release %s from %s",
            asset.get("tag_name") or "latest",
            url,
        )
        os.makedirs(os.path.dirname(os.path.abspath(self.db_path)), exist_ok=True)
        temp_path = f"{self.db_path}.download"
        started = time.perf_counter()
        try:
            written = self.download_with_retries(url, temp_path, asset.get("size"))
            if written == 0:
                raise RuntimeError("Downloaded DrugBank database release is empty")
            os.replace(temp_path, self.db_path)
        finally:
            if os.path.exists(temp_path):
                os.remove(temp_path)
        for suffix in ("-wal", "-shm", "-journal"):
            stale = f"{self.db_path}{suffix}"
            if os.path.exists(stale):
                os.remove(stale)

        repository = SQLiteRepository(
            self.db_path, self.database_settings, read_only=False
        )
        try:
            repository.finalize()
        finally:
            repository.dispose()
        elapsed = time.perf_counter() - started
        logger.info(
            "DrugBank database saved to %s (%.1f MB) in %.2f seconds",
            self.db_path,
            written / (1024 * 1024),
            elapsed,
        )
        return {
            "version": asset.get("tag_name"),
            "url": url,
            "path": self.db_path,
            "bytes": written,
            "elapsed_seconds": elapsed,
        }
