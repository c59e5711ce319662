"""Project error hierarchy."""


class SensGateError(Exception):
    """Base error."""


class TermStoreError(SensGateError):
    """Raised when the term list or refusal text cannot be persisted."""


class OptionStoreError(SensGateError):
    """Raised when an option value is invalid or the backend fails."""


class EnvelopeDecodeError(SensGateError):
    """Raised when a chat-completion envelope cannot be decoded."""


class RequestBodyReadError(SensGateError):
    """Raised when the client disconnects before the body is complete."""
