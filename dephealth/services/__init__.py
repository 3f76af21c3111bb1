"""Service layer — business logic orchestration."""


class ServiceError(Exception):
    """Base service exception."""


class ValidationError(ServiceError):
    """Input validation error (-> HTTP 422)."""


class UpstreamUnavailable(ServiceError):
    """Repository provider unreachable or repository missing.

    ``status_code`` mirrors the upstream HTTP status when there was one,
    otherwise it is 500.
    """

    def __init__(self, message: str, status_code: int = 500) -> None:
        super().__init__(message)
        self.status_code = status_code


class ManifestUnreadable(ServiceError):
    """The manifest exists but could not be fetched or decoded (soft error)."""
