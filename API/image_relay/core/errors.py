from enum import Enum


class ErrorKind(str, Enum):
    INVALID_FILE = "InvalidFile"
    EMPTY_FILE = "EmptyFile"
    FILE_TOO_LARGE = "FileTooLarge"
    NOT_A_TAR = "NotATar"
    ENGINE_UNAVAILABLE = "EngineUnavailable"


class RelayError(Exception):
    """Base error rendered by the API as {"error": ..., "details": ...}."""
    status_code: int = 500
    error: str = "Failed to process request"

    def __init__(self, details: str | None = None, kind: ErrorKind | None = None, error: str | None = None):
        super().__init__(details or error or self.error)
        self.details = details
        self.kind = kind
        if error is not None:
            self.error = error


class BadRequestError(RelayError):
    status_code = 400
    error = "Bad request"


class UploadRejectedError(BadRequestError):
    error = "Invalid upload"


class TarValidationError(BadRequestError):
    error = "Invalid Docker tar file"


class UploadProcessingError(RelayError):
    error = "Failed to process Docker tar upload"


class EngineUnavailableError(UploadProcessingError):
    def __init__(self, details: str = "Docker daemon is not accessible. Ensure Docker is running and accessible from this container."):
        super().__init__(details, ErrorKind.ENGINE_UNAVAILABLE)


class EngineTimeoutError(RelayError):
    error = "Docker operation timed out"
