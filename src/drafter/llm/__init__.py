"""LLM integration package for reply drafting.

Provides Anthropic client configuration, prompt templates, knowledge
document loading, and the grounded reply composer.
"""

from drafter.llm.client import COMPOSE_MODEL, FILES_API_BETA, get_anthropic_client
from drafter.llm.composer import build_request, compose_reply, is_classification_label
from drafter.llm.knowledge_base import (
    KnowledgeDocument,
    KnowledgeSource,
    load_knowledge_documents,
    parse_file_ids,
)
from drafter.llm.models import GeneratedDraft

__all__ = [
    "COMPOSE_MODEL",
    "FILES_API_BETA",
    "GeneratedDraft",
    "KnowledgeDocument",
    "KnowledgeSource",
    "build_request",
    "compose_reply",
    "get_anthropic_client",
    "is_classification_label",
    "load_knowledge_documents",
    "parse_file_ids",
]
