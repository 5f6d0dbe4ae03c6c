"""Pydantic models for call-to-action routing policy and decisions."""

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class CtaCategory(StrEnum):
    """Closed set of call-to-action destinations."""

    IN_PERSON = "in_person"
    INTEGRATIONS = "integrations"
    ON_WEBSITE = "on_website"
    PAYMENT_LINKS = "payment_links"
    DEFAULT = "default"


class RouteRule(BaseModel):
    """Keyword patterns that send a thread to one destination path.

    Patterns are regular expressions matched against lower-cased,
    accent-folded text, so they should be written without diacritics.
    """

    model_config = ConfigDict(frozen=True)

    category: CtaCategory
    path: str
    patterns: list[str] = Field(default_factory=list)


class RoutingPolicy(BaseModel):
    """Ordered routing table plus the URL parts shared by every destination.

    ``routes`` are tested in list order and the first match wins; nothing
    matching falls through to ``default_path``.
    """

    model_config = ConfigDict(frozen=True)

    website_base: str = "https://business.tab.travel"
    utm_params: str = "utm_source=missive&utm_medium=email&utm_campaign=reply_drafter"
    default_path: str = "/payments?show=true"
    routes: list[RouteRule] = Field(default_factory=list)

    def path_for(self, category: CtaCategory) -> str:
        """Destination path of *category*, or the default path."""
        for rule in self.routes:
            if rule.category == category:
                return rule.path
        return self.default_path


class RoutingDecision(BaseModel):
    """The destination chosen for one thread."""

    model_config = ConfigDict(frozen=True)

    category: CtaCategory
    path: str
    url: str
