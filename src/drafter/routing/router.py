"""Rule-based call-to-action routing for inbound threads.

The subject and flattened thread are lower-cased and accent-folded, then
tested against multilingual (English, Spanish, Portuguese, French) keyword
batteries in a fixed priority order: in-person, integrations, on-website,
payment-links.  The first category with a matching pattern wins; there is
no scoring.  Classification sits behind the ``Classifier`` protocol so the
keyword strategy can be swapped for a model-based one.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Protocol

import structlog
import yaml  # type: ignore[import-untyped]

from drafter.routing.models import CtaCategory, RouteRule, RoutingDecision, RoutingPolicy
from drafter.text import fold

logger = structlog.get_logger()

DEFAULT_ROUTES: list[RouteRule] = [
    RouteRule(
        category=CtaCategory.IN_PERSON,
        path="/in-person-payments",
        patterns=[
            # en
            r"card ?readers?",
            r"card machines?",
            r"\bpos\b",
            r"point[- ]of[- ]sale",
            r"\bterminals?\b",
            r"in[- ]store",
            r"in[- ]person",
            r"tap to pay",
            r"contactless",
            r"chip and pin",
            # es
            r"datafonos?",
            r"\btpv\b",
            r"lector(es)? de tarjetas?",
            r"en (la )?tienda",
            r"presencial",
            # pt
            r"maquininhas?",
            r"maquinas? de cartao",
            r"leitor(es)? de cartao",
            r"na loja",
            # fr
            r"lecteurs? de cartes?",
            r"\btpe\b",
            r"en magasin",
            r"sans contact",
        ],
    ),
    RouteRule(
        category=CtaCategory.INTEGRATIONS,
        path="/integrations",
        patterns=[
            # en / fr
            r"integrat",
            r"\bapis?\b",
            r"\bsdk\b",
            r"webhooks?",
            r"plug-?ins?",
            r"xero",
            r"quickbooks",
            r"\bsage\b",
            r"shopify",
            r"woocommerce",
            r"\bpms\b",
            r"connecteurs?",
            # es
            r"integracion(es)?",
            r"conectores?",
            # pt
            r"integrac(ao|oes)",
        ],
    ),
    RouteRule(
        category=CtaCategory.ON_WEBSITE,
        path="/on-website",
        patterns=[
            # en
            r"check-?out",
            r"websites?",
            r"on (my|our|the) site",
            r"online (payments?|store|shop|booking)",
            r"e-?commerce",
            r"payment (page|form|button)",
            r"booking engine",
            # es
            r"sitio web",
            r"pagina web",
            r"tienda (online|en linea)",
            r"pasarela de pago",
            # pt
            r"loja (virtual|online)",
            r"pagina de pagamento",
            # fr
            r"site (web|internet)",
            r"boutique en ligne",
            r"paiement en ligne",
        ],
    ),
    RouteRule(
        category=CtaCategory.PAYMENT_LINKS,
        path="/payment-links/in-advance",
        patterns=[
            # en
            r"payment links?",
            r"pay(ment)? by link",
            r"invoices?",
            r"deposits?",
            r"pay(ment)? in advance",
            r"advance payments?",
            r"pre-?pay",
            # es
            r"(enlace|link) de pago",
            r"facturas?",
            r"pago (por )?adelantado",
            r"anticipos?",
            # pt
            r"link de pagamento",
            r"faturas?",
            r"pagamento antecipado",
            r"adiantamento",
            # fr
            r"liens? de paiement",
            r"factures?",
            r"acomptes?",
            r"paiement anticipe",
            r"prepaiement",
        ],
    ),
]

DEFAULT_POLICY = RoutingPolicy(routes=DEFAULT_ROUTES)


class Classifier(Protocol):
    """Maps free text to a call-to-action category."""

    def classify(self, text: str) -> CtaCategory: ...


class KeywordClassifier:
    """First-match keyword classifier over a ``RoutingPolicy`` table.

    Args:
        policy: The routing table; rules are tested in list order.
    """

    def __init__(self, policy: RoutingPolicy = DEFAULT_POLICY) -> None:
        self._rules: list[tuple[CtaCategory, list[re.Pattern[str]]]] = [
            (rule.category, [re.compile(p) for p in rule.patterns]) for rule in policy.routes
        ]

    def classify(self, text: str) -> CtaCategory:
        """Return the first category with a pattern found in *text*."""
        haystack = fold(text.lower())
        for category, patterns in self._rules:
            if any(p.search(haystack) for p in patterns):
                return category
        return CtaCategory.DEFAULT


def detect_destination(
    thread_text: str,
    subject: str,
    policy: RoutingPolicy = DEFAULT_POLICY,
    classifier: Classifier | None = None,
) -> str:
    """Pick the call-to-action path for a thread.

    Args:
        thread_text: The flattened thread transcript.
        subject: The conversation subject.
        policy: Routing table supplying the category paths.
        classifier: Classification strategy; defaults to a
            ``KeywordClassifier`` over *policy*.

    Returns:
        The destination path of the matched category, or the default path.
    """
    classifier = classifier or KeywordClassifier(policy)
    category = classifier.classify(f"{subject}\n{thread_text}")
    return policy.path_for(category)


def build_cta_url(path: str, policy: RoutingPolicy = DEFAULT_POLICY) -> str:
    """Join *path* to the website base and append the UTM parameters.

    The parameters are joined with ``&`` when the URL already carries a
    query string, otherwise with ``?``.
    """
    url = policy.website_base.rstrip("/") + "/" + path.lstrip("/")
    if not policy.utm_params:
        return url
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}{policy.utm_params}"


def route(
    thread_text: str,
    subject: str,
    policy: RoutingPolicy = DEFAULT_POLICY,
    classifier: Classifier | None = None,
) -> RoutingDecision:
    """Classify a thread and build its fully qualified CTA URL."""
    classifier = classifier or KeywordClassifier(policy)
    category = classifier.classify(f"{subject}\n{thread_text}")
    path = policy.path_for(category)
    decision = RoutingDecision(category=category, path=path, url=build_cta_url(path, policy))
    logger.info("CTA route selected", category=decision.category.value, path=path)
    return decision


def load_routing_policy(config_path: Path) -> RoutingPolicy:
    """Load a routing table from YAML.

    Expected layout::

        website_base: https://business.example.com
        utm_params: utm_source=missive&utm_medium=email
        default_path: /payments
        routes:
          - category: in_person
            path: /in-person-payments
            patterns: ["card ?reader", "datafono"]

    Keys left out keep the built-in defaults; an absent ``routes`` key keeps
    the built-in keyword table.

    Args:
        config_path: Path to the YAML file.

    Returns:
        The validated ``RoutingPolicy``.

    Raises:
        FileNotFoundError: If *config_path* does not exist.
        pydantic.ValidationError: If the file content is invalid.
    """
    if not config_path.exists():
        raise FileNotFoundError(f"Routing config not found: {config_path}")

    with config_path.open(encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    raw.setdefault("routes", [rule.model_dump() for rule in DEFAULT_ROUTES])
    return RoutingPolicy.model_validate(raw)
