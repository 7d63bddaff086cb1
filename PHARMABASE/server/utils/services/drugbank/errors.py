from __future__ import annotations


###############################################################################
class DrugQueryValidationError(ValueError):
    """Raised when caller-supplied query parameters are missing or malformed."""


class DrugNotFoundError(LookupError):
    def __init__(self, drugbank_id: str) -> None:
        super().__init__(f"Drug not found: {drugbank_id}")
        self.drugbank_id = drugbank_id


###############################################################################
class DrugBankSourceError(RuntimeError):
    """Raised when the DrugBank export cannot be opened or decoded."""


class DatabaseUnavailableError(RuntimeError):
    pass


__all__ = [
    "DatabaseUnavailableError",
    "DrugBankSourceError",
    "DrugNotFoundError",
    "DrugQueryValidationError",
]
