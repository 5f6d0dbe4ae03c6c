"""Prometheus metrics instrumentation for the reply drafter.

Provides:
- ``setup_metrics(app)``: Attach prometheus-fastapi-instrumentator to a FastAPI app,
  exposing ``/metrics`` with HTTP request duration/count plus custom pipeline counters.
- ``DRAFTS_CREATED``: Counter of drafts created, labelled by CTA category.
- ``PIPELINE_FAILURES``: Counter of failed invocations, labelled by failing stage.
"""

from __future__ import annotations

from fastapi import FastAPI
from prometheus_client import Counter
from prometheus_fastapi_instrumentator import Instrumentator

DRAFTS_CREATED: Counter = Counter(
    "drafter_drafts_created_total",
    "Total number of reply drafts created in Missive",
    ["category"],
)

PIPELINE_FAILURES: Counter = Counter(
    "drafter_pipeline_failures_total",
    "Total number of webhook invocations that failed, by stage",
    ["stage"],
)


def setup_metrics(app: FastAPI) -> None:
    """Instrument *app* with Prometheus HTTP metrics and expose ``/metrics``.

    Excludes health/ready/metrics endpoints from instrumentation to avoid
    noise in dashboards.

    Args:
        app: The FastAPI application to instrument.
    """
    Instrumentator(
        should_group_status_codes=True,
        should_ignore_untemplated=True,
        excluded_handlers=["/health", "/ready", "/metrics"],
    ).instrument(app).expose(app, include_in_schema=False, should_gzip=True)
