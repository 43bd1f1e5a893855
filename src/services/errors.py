"""Typed errors raised by the catalog services."""


class CatalogError(Exception):
    """Base class for errors the service layer reports to callers."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(CatalogError):
    """Malformed or out-of-range input. Carries every problem found, not just the first."""

    def __init__(self, errors: list[str] | str):
        if isinstance(errors, str):
            errors = [errors]
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


class NotFoundError(CatalogError):
    pass


class ConflictError(CatalogError):
    pass


class AuthorizationError(CatalogError):
    pass


class DependencyError(CatalogError):
    """A collaborator (blob store, database) failed."""
