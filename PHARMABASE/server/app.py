from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, RedirectResponse

from PHARMABASE.server.database.database import DrugBankDatabase
from PHARMABASE.server.routes.drugs import router as drugs_router
from PHARMABASE.server.utils.configurations import server_settings
from PHARMABASE.server.utils.logger import logger
from PHARMABASE.server.utils.services.drugbank.query import DrugQueryEngine


# -----------------------------------------------------------------------------
async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": jsonable_encoder(exc.errors())},
    )


# -----------------------------------------------------------------------------
def create_app(database: DrugBankDatabase | None = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        handle = database or DrugBankDatabase()
        app.state.database = handle
        app.state.query_engine = DrugQueryEngine(handle)
        logger.info("DrugBank query engine ready")
        try:
            yield
        finally:
            handle.close()

    application = FastAPI(
        title=server_settings.fastapi.title,
        version=server_settings.fastapi.version,
        description=server_settings.fastapi.description,
        lifespan=lifespan,
    )
    application.add_exception_handler(RequestValidationError, validation_error_handler)
    application.include_router(drugs_router)

    @application.get("/", include_in_schema=False)
    def redirect_to_docs() -> RedirectResponse:
        return RedirectResponse(url="/docs")

    return application


###############################################################################
app = create_app()
