"""Domain-specific exception classes for the reply drafter.

Every external-call failure is terminal for the webhook invocation that
raised it; the webhook maps any ``DrafterError`` to a 500 response carrying
``str(exc)``.
"""


class DrafterError(Exception):
    """Base class for all pipeline errors."""


class ThreadFetchError(DrafterError):
    """Raised when listing, hydrating, or describing a conversation fails.

    Attributes:
        conversation_id: The conversation being fetched, if known.
    """

    def __init__(self, message: str, conversation_id: str | None = None) -> None:
        self.conversation_id = conversation_id
        super().__init__(message)


class GenerationError(DrafterError):
    """Raised when the generation service fails or never reaches a terminal state."""


class PublishError(DrafterError):
    """Raised when the platform rejects the draft submission."""
