"""Error taxonomy for the reply drafter."""

from drafter.domain.errors import DrafterError, GenerationError, PublishError, ThreadFetchError

__all__ = [
    "DrafterError",
    "GenerationError",
    "PublishError",
    "ThreadFetchError",
]
