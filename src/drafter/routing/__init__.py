"""Call-to-action routing: policy models, keyword classifier, and URL building."""

from drafter.routing.models import CtaCategory, RouteRule, RoutingDecision, RoutingPolicy
from drafter.routing.router import (
    DEFAULT_POLICY,
    DEFAULT_ROUTES,
    Classifier,
    KeywordClassifier,
    build_cta_url,
    detect_destination,
    load_routing_policy,
    route,
)

__all__ = [
    "DEFAULT_POLICY",
    "DEFAULT_ROUTES",
    "Classifier",
    "CtaCategory",
    "KeywordClassifier",
    "RouteRule",
    "RoutingDecision",
    "RoutingPolicy",
    "build_cta_url",
    "detect_destination",
    "load_routing_policy",
    "route",
]
