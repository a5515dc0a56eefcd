class ChatError(Exception):
    """Base class for errors raised by groq_chat."""


class ConfigError(ChatError):
    pass


class InvalidMessagesError(ChatError):
    def __init__(self, message: str = "Valid message history is required"):
        super().__init__(message)


class RelayError(ChatError):
    """The relay could not be reached or answered with a non-2xx status."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class StoreError(ChatError):
    """A persistence call failed. The operation is not retried."""


class AuthError(ChatError):
    """Raised with the auth provider's own error text."""
