"""Application entry point serving the Missive webhook with FastAPI.

Configures:
- **structlog** with JSON rendering (production) or colored console (development),
  with ERROR events forwarded to Sentry when a DSN is configured
- **Missive** and **Anthropic** clients shared by all webhook invocations
- **Pipeline configuration** (routing table, reply policy, knowledge) from settings
- **Request ID** middleware, Prometheus ``/metrics``, and health/readiness probes
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

import structlog
import uvicorn
from fastapi import FastAPI

from drafter.config import Settings, get_settings, validate_credentials
from drafter.domain.errors import DrafterError
from drafter.health import register_health_routes
from drafter.missive.client import MissiveClient
from drafter.observability.metrics import setup_metrics
from drafter.observability.middleware import SERVICE_NAME, RequestIdMiddleware
from drafter.observability.sentry import get_sentry_processor, init_sentry
from drafter.pipeline import DraftResult, build_pipeline_config, draft_reply
from drafter.webhook import router as webhook_router
from drafter.webhook import set_draft_processor

logger = structlog.get_logger()


def configure_logging(production: bool = False, sentry_enabled: bool = False) -> None:
    """Configure structlog for production (JSON) or development (console).

    Production mode (*production=True*): JSON rendering at INFO level.
    Development mode: colored console rendering at DEBUG level.

    Args:
        production: Enable production mode if ``True``.
        sentry_enabled: Insert the Sentry processor before the renderer.
    """
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]
    if sentry_enabled:
        shared_processors.append(get_sentry_processor())

    if production:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
        log_level = logging.INFO
    else:
        renderer = structlog.dev.ConsoleRenderer()
        log_level = logging.DEBUG

    structlog.configure(
        processors=[*shared_processors, renderer],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    structlog.contextvars.bind_contextvars(service=SERVICE_NAME)


def initialize_services(settings: Settings | None = None) -> dict[str, Any]:
    """Set up the shared clients and pipeline configuration.

    Clients whose credentials are missing are left as ``None``; the
    readiness probe reports them and the webhook answers 500 until they
    are configured.

    Args:
        settings: Application settings.  If ``None``, ``get_settings()`` is used.

    Returns:
        A dict of initialized service instances keyed by name.
    """
    if settings is None:
        settings = get_settings()

    services: dict[str, Any] = {"_settings": settings}

    missive_client = None
    missive_token = settings.missive_api_token.get_secret_value()
    if missive_token:
        missive_client = MissiveClient(missive_token, base_url=settings.missive_api_base)
        logger.info("MissiveClient initialized")
    else:
        logger.info("MISSIVE_API_TOKEN not set, MissiveClient disabled")
    services["missive_client"] = missive_client

    anthropic_client = None
    anthropic_key = settings.anthropic_api_key.get_secret_value()
    if anthropic_key:
        from drafter.llm.client import get_anthropic_client

        anthropic_client = get_anthropic_client(anthropic_key)
        logger.info("Anthropic client initialized")
    else:
        logger.info("ANTHROPIC_API_KEY not set, Anthropic client disabled")
    services["anthropic_client"] = anthropic_client

    pipeline_config = build_pipeline_config(settings)
    services["pipeline_config"] = pipeline_config
    logger.info(
        "Pipeline configured",
        knowledge_files=len(pipeline_config.knowledge.file_ids),
        knowledge_documents=len(pipeline_config.knowledge.documents),
        routes=len(pipeline_config.routing.routes),
        generation_mode=pipeline_config.generation_mode,
    )
    if pipeline_config.knowledge.is_empty():
        logger.warning("No knowledge configured, replies will be ungrounded")

    return services


def build_draft_processor(services: dict[str, Any]) -> Any:
    """Bind the pipeline to *services* as the webhook's draft processor."""

    async def process(conversation_id: str) -> DraftResult:
        missive = services.get("missive_client")
        anthropic_client = services.get("anthropic_client")
        if missive is None or anthropic_client is None:
            raise DrafterError("Missive or Anthropic client not configured")
        return await draft_reply(
            conversation_id,
            missive=missive,
            anthropic_client=anthropic_client,
            config=services["pipeline_config"],
        )

    return process


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Lifespan context manager for FastAPI startup and shutdown.

    On shutdown: closes the Missive HTTP client.

    Args:
        app: The FastAPI application instance.

    Yields:
        Control to the application.
    """
    logger.info("FastAPI application starting")
    yield
    missive = app.state.services.get("missive_client")
    if missive is not None:
        await missive.aclose()
        logger.info("Missive client closed")


def create_app(services: dict[str, Any]) -> FastAPI:
    """Create the FastAPI app with lifespan, webhook router, and probes.

    Args:
        services: The initialized services dict from ``initialize_services``.

    Returns:
        The configured FastAPI application.
    """
    fastapi_app = FastAPI(title="Missive Reply Drafter", lifespan=lifespan)
    fastapi_app.state.services = services
    fastapi_app.state.settings = services.get("_settings", get_settings())
    fastapi_app.add_middleware(RequestIdMiddleware)
    fastapi_app.include_router(webhook_router)
    register_health_routes(fastapi_app)
    setup_metrics(fastapi_app)

    set_draft_processor(build_draft_processor(services))

    return fastapi_app


async def main() -> None:
    """Main entry point: configure, validate, and serve the webhook.

    1. Configure Sentry and logging
    2. Validate credentials
    3. Initialize services and create the FastAPI app
    4. Run uvicorn until shutdown
    """
    settings = get_settings()
    environment = "production" if settings.production else "development"
    sentry_enabled = init_sentry(settings.sentry_dsn, environment=environment)
    configure_logging(production=settings.production, sentry_enabled=sentry_enabled)
    logger.info("Application starting")

    validate_credentials(settings)

    services = initialize_services(settings)
    fastapi_app = create_app(services)

    config = uvicorn.Config(
        fastapi_app,
        host="0.0.0.0",
        port=settings.webhook_port,
        log_level="info",
    )
    server = uvicorn.Server(config)
    await server.serve()


if __name__ == "__main__":
    asyncio.run(main())
