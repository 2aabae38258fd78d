"""Custom exception classes for structured error handling."""

from typing import Any


class CodeswitchError(Exception):
    """Base exception for all Codeswitch errors."""

    def __init__(self, code: str, message: str, status_code: int = 500) -> None:
        self.code = code
        self.message = message
        self.status_code = status_code
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.message, "code": self.code}


class EmptyInputError(CodeswitchError):
    def __init__(self, message: str = "Input is empty") -> None:
        super().__init__(code="EMPTY_INPUT", message=message, status_code=400)


class CapabilityError(CodeswitchError):
    def __init__(self, message: str = "Upstream capability failed") -> None:
        super().__init__(code="CAPABILITY_FAILED", message=message, status_code=502)


class RateLimitExceededError(CodeswitchError):
    def __init__(self, message: str = "Rate limit exceeded") -> None:
        super().__init__(code="RATE_LIMIT_EXCEEDED", message=message, status_code=429)


class TranslationUnavailableError(CodeswitchError):
    def __init__(self, message: str = "Translation service is unreachable") -> None:
        super().__init__(code="TRANSLATION_UNAVAILABLE", message=message, status_code=503)


class TranscriptionError(CodeswitchError):
    def __init__(self, message: str = "Failed to transcribe audio") -> None:
        super().__init__(code="TRANSCRIPTION_FAILED", message=message, status_code=502)


class CapabilityUnreachableError(CapabilityError):
    def __init__(self, message: str = "Upstream capability is unreachable") -> None:
        super().__init__(message=message)
        self.code = "CAPABILITY_UNREACHABLE"
        self.status_code = 503
