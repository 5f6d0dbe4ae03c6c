"""Centralized, typed configuration using pydantic-settings.

Provides a single ``Settings`` class backed by ``.env`` file and environment
variables, a cached ``get_settings()`` accessor, and a ``validate_credentials()``
startup gate that enforces credential presence in production mode.

IMPORTANT: This module has ZERO imports from the ``drafter`` package to
prevent circular imports.  Only stdlib, pydantic, pydantic_settings, and
structlog are used.
"""

from __future__ import annotations

import sys
from functools import lru_cache
from pathlib import Path
from typing import Literal

import structlog
from pydantic import SecretStr, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = structlog.get_logger()

GenerationMode = Literal["messages", "batch"]


class Settings(BaseSettings):
    """Application settings loaded from environment variables and ``.env`` file.

    ``SecretStr`` fields prevent accidental leaks in logs or error output.
    List-valued settings (``KNOWLEDGE_FILE_IDS``, ``INTERNAL_DOMAINS``) are
    comma-separated strings.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # -- General ---------------------------------------------------------------
    production: bool = False
    webhook_port: int = 8000
    sentry_dsn: str = ""

    # -- Missive ---------------------------------------------------------------
    missive_api_token: SecretStr = SecretStr("")
    missive_api_base: str = "https://public.missiveapp.com/v1"

    # -- Thread fetching -------------------------------------------------------
    thread_page_size: int = 10
    thread_max_pages: int = 6
    thread_page_delay: float = 0.25
    thread_char_limit: int = 32000

    # -- LLM / Anthropic -------------------------------------------------------
    anthropic_api_key: SecretStr = SecretStr("")
    anthropic_model: str = "claude-sonnet-4-5-20250929"
    generation_mode: GenerationMode = "messages"
    system_hint: str = ""

    # -- Knowledge base --------------------------------------------------------
    knowledge_file_ids: str = ""
    knowledge_base_dir: Path | None = None

    # -- Draft identity & addressing -------------------------------------------
    sender_address: str = ""
    sender_name: str = ""
    organization_domain: str = "tab.travel"
    internal_domains: str = "tab.travel"

    # -- CTA routing -----------------------------------------------------------
    website_base: str = "https://business.tab.travel"
    utm_params: str = "utm_source=missive&utm_medium=email&utm_campaign=reply_drafter"
    cta_routes_path: Path | None = None

    # -- Reply formatting ------------------------------------------------------
    operator_name: str = "Alex"
    support_label: str = "Tab Support"
    enforce_structure: bool = True


@lru_cache
def get_settings() -> Settings:
    """Return a cached ``Settings`` instance.

    The ``@lru_cache`` decorator ensures environment variables are parsed
    exactly once.  Call ``get_settings.cache_clear()`` in tests to reset.

    Returns:
        The application ``Settings``.
    """
    try:
        return Settings()
    except ValidationError as exc:
        # Log only the structured errors list -- never the full exception
        # which may contain raw SecretStr values.
        logger.error("settings_validation_failed", errors=exc.errors())
        sys.exit(1)


def validate_credentials(settings: Settings) -> None:
    """Enforce credential presence at startup.

    In **production** mode (``settings.production is True``), the application
    exits with a clear error block if any required credential is missing.

    In **development** mode, each missing credential is logged as a warning
    but the application continues to start.

    Args:
        settings: The loaded application settings.
    """
    errors: list[str] = []

    if not settings.missive_api_token.get_secret_value():
        errors.append("MISSIVE_API_TOKEN is empty or not set")

    if not settings.anthropic_api_key.get_secret_value():
        errors.append("ANTHROPIC_API_KEY is empty or not set")

    if not settings.sender_address:
        errors.append("SENDER_ADDRESS is empty or not set")

    if settings.cta_routes_path is not None and not settings.cta_routes_path.exists():
        errors.append(f"CTA routes file not found: {settings.cta_routes_path}")

    if not errors:
        logger.info("credential_validation_passed")
        return

    if settings.production:
        for err in errors:
            logger.error("credential_missing", detail=err)
        print("\n=== STARTUP FAILED ===", file=sys.stderr)
        print("Missing required credentials for production mode:", file=sys.stderr)
        for err in errors:
            print(f"  - {err}", file=sys.stderr)
        print("======================\n", file=sys.stderr)
        sys.exit(1)
    else:
        for err in errors:
            logger.warning("credential_missing_dev", detail=err)
