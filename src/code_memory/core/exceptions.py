"""Custom exceptions for code-memory."""


class CodeMemoryError(Exception):
    """Base exception for all code-memory errors."""

    def __init__(self, message: str, details: dict | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(CodeMemoryError):
    """Raised when there's a configuration problem."""

    pass


class ValidationError(CodeMemoryError):
    """Raised when validation fails."""

    pass


class BackendInvocationError(CodeMemoryError):
    """Raised when a call to an embedding backend fails."""

    def __init__(
        self,
        message: str,
        backend: str,
        rate_limited: bool = False,
        status_code: int | None = None,
        details: dict | None = None,
    ) -> None:
        super().__init__(message, details)
        self.backend = backend
        self.rate_limited = rate_limited
        self.status_code = status_code


class StorageError(CodeMemoryError):
    """Raised when a storage operation fails after all retries."""

    def __init__(
        self,
        message: str,
        operation: str,
        attempts: int = 1,
        details: dict | None = None,
    ) -> None:
        super().__init__(message, details)
        self.operation = operation
        self.attempts = attempts


class EmbeddingError(CodeMemoryError):
    """Raised when embedding generation fails."""

    pass


class PipelineError(CodeMemoryError):
    """Raised when a pipeline step fails."""

    pass
