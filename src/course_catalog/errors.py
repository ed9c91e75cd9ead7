"""Error types raised by the service layer and rendered by the API."""

from typing import Iterable, List


class CatalogError(Exception):
    """Base class for errors surfaced to API callers in the envelope."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(CatalogError):
    """One or more request fields failed validation."""

    status_code = 400

    def __init__(self, errors: Iterable[str]) -> None:
        self.errors: List[str] = list(errors)
        super().__init__(", ".join(self.errors))


class Unauthenticated(CatalogError):
    status_code = 401


class Forbidden(CatalogError):
    status_code = 403


class NotFound(CatalogError):
    status_code = 404


class Conflict(CatalogError):
    status_code = 409
