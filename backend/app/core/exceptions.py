class AppError(Exception):
    """Base class for all application exceptions."""
    def __init__(self, message: str, status_code: int = 500, details: dict = None):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

class PlanningValidationError(AppError):
    """Raised for user-correctable planning input, before anything is mutated."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=422, details=details)

class ResourceNotFoundError(AppError):
    """Raised when a requested resource is not found."""
    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(f"{resource_type} with id {resource_id} not found", status_code=404)

class ResolutionFailure(AppError):
    """A catalog entry could not be resolved against the template.

    Never surfaced to clients; callers log it and record it in their result.
    """
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=200, details=details)

class TransientStoreError(AppError):
    """Raised when the collection store rejected a call that may succeed on retry."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=503, details=details)

class OperationCancelledError(TransientStoreError):
    """Raised when an in-flight store call was superseded or aborted."""

class ConfigurationError(AppError):
    """Raised when system configuration is invalid."""
    def __init__(self, message: str):
        super().__init__(message, status_code=500)
