"""Anthropic client factory and model configuration for reply drafting."""

from anthropic import Anthropic

COMPOSE_MODEL = "claude-sonnet-4-5-20250929"

# Knowledge files referenced by id need the Files API beta header
FILES_API_BETA = "files-api-2025-04-14"

# Batch generation mode: bounded status polling
BATCH_POLL_ATTEMPTS = 12
BATCH_POLL_INTERVAL_SECONDS = 1.2

GENERATION_MODES = ("messages", "batch")


def get_anthropic_client(api_key: str | None = None) -> Anthropic:
    """Create an Anthropic client.

    Without an explicit *api_key* the constructor reads ANTHROPIC_API_KEY
    from the environment.

    Returns:
        Configured Anthropic client instance.
    """
    if api_key:
        return Anthropic(api_key=api_key)
    return Anthropic()
