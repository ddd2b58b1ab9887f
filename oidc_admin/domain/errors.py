"""Exceptions raised by the mapping administration domain."""

from typing import List, Optional, Sequence

from oidc_admin.domain.models.mapping_models import RemoteFieldError


class MappingAdminError(Exception):
    """Base class for all mapping administration errors."""


class LocalValidationError(MappingAdminError):
    """Input rejected before any remote call (e.g. empty name or bulk text)."""


class MappingStoreError(MappingAdminError):
    """Invalid operation on the mapping collection."""


class DuplicateIdError(MappingStoreError):
    """A candidate mapping id is already used."""

    def __init__(self, mapping_id: str):
        super().__init__(f"Mapping with ID '{mapping_id}' already exists")
        self.mapping_id = mapping_id


class NotFoundError(MappingStoreError):
    """No mapping has the requested id."""

    def __init__(self, mapping_id: str):
        super().__init__(f"Mapping with ID '{mapping_id}' not found")
        self.mapping_id = mapping_id


class WorkflowBusyError(MappingAdminError):
    """A commit is already in flight."""


class OidcApiError(MappingAdminError):
    """
    Error response from the remote configuration API.

    Attributes:
        status_code: HTTP status returned by the remote
        errors: Structured field-level errors, possibly empty
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        errors: Optional[Sequence[RemoteFieldError]] = None
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.errors: List[RemoteFieldError] = list(errors or [])

    def formatted(self) -> str:
        """Field messages joined for display, or the top-level message."""
        joined = "\n".join(e.message for e in self.errors if e.message)
        return joined or self.message


class CommitError(MappingAdminError):
    """Failure of the validate-then-commit protocol."""


class RemoteValidationError(CommitError):
    """Phase 1 rejected the candidate configuration."""

    def __init__(self, errors: Sequence[RemoteFieldError], message: str):
        super().__init__(message)
        self.errors: List[RemoteFieldError] = list(errors)


class PersistenceError(CommitError):
    """Phase 2 failed after the candidate passed validation."""


class UnexpectedError(CommitError):
    """Any other failure during the commit protocol."""

    def __init__(self, message: str = "An unexpected error occurred. Please check the logs for more details."):
        super().__init__(message)
