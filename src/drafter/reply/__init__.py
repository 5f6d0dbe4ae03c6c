"""Post-processing of generated replies into final draft HTML."""

from drafter.reply.normalizer import (
    DEFAULT_REPLY_POLICY,
    ReplyPolicy,
    first_name,
    normalize_reply,
)

__all__ = [
    "DEFAULT_REPLY_POLICY",
    "ReplyPolicy",
    "first_name",
    "normalize_reply",
]
