"""Resolve the active pricing rules, falling back to the static rule set."""

import json
import logging
from dataclasses import dataclass
from typing import Any, Literal, Optional, Protocol

from cejquote.business import FALLBACK_PRICING_RULES
from cejquote.monitoring import MonitoringReporter
from cejquote.rules import PricingRules, validate_pricing_rules

logger = logging.getLogger(__name__)

DEFAULT_TABLE = "price_config"
DEFAULT_COLUMN = "pricing_rules"


class ClientProvider(Protocol):
    def get_client(self) -> Optional[Any]:
        ...


@dataclass(frozen=True)
class ResolvedRules:
    """Rule set plus where it came from."""

    rules: PricingRules
    source: Literal["remote", "fallback"]


class PricingConfigResolver:
    """Fetch live pricing rules; never raise, never return an invalid shape.

    Either the fully validated remote rule set or the fallback is returned;
    fields are never merged.
    """

    def __init__(
        self,
        client_provider: ClientProvider,
        reporter: MonitoringReporter,
        *,
        table: str = DEFAULT_TABLE,
        column: str = DEFAULT_COLUMN,
        fallback: PricingRules = FALLBACK_PRICING_RULES,
    ) -> None:
        self.client_provider = client_provider
        self.reporter = reporter
        self.table = table
        self.column = column
        self.fallback = fallback

    def resolve(self) -> PricingRules:
        return self.resolve_with_source().rules

    def resolve_with_source(self) -> ResolvedRules:
        try:
            return self._resolve()
        except Exception as exc:
            self.reporter.report_error(
                exc, {"action": "resolve_pricing_rules", "phase": "unexpected"}
            )
            return self._fallback()

    def _fallback(self) -> ResolvedRules:
        return ResolvedRules(rules=self.fallback, source="fallback")

    def _resolve(self) -> ResolvedRules:
        client = self.client_provider.get_client()
        if client is None:
            logger.warning("Pricing backend not configured, using fallback rules")
            return self._fallback()

        try:
            response = (
                client.table(self.table).select(self.column).limit(1).execute()
            )
        except Exception as exc:
            self.reporter.report_error(
                exc, {"action": "resolve_pricing_rules", "phase": "db_query"}
            )
            return self._fallback()

        rows = getattr(response, "data", None) or []
        if not rows:
            logger.info("No pricing rules row found, using fallback rules")
            return self._fallback()

        row = rows[0] if isinstance(rows, list) else rows
        blob = row.get(self.column) if isinstance(row, dict) else None
        if blob is None:
            logger.info("Pricing rules row is empty, using fallback rules")
            return self._fallback()

        if isinstance(blob, (str, bytes)):
            try:
                blob = json.loads(blob)
            except ValueError as exc:
                self.reporter.report_error(
                    exc, {"action": "resolve_pricing_rules", "phase": "decode"}
                )
                return self._fallback()

        result = validate_pricing_rules(blob)
        if not result.ok:
            self.reporter.report_error(
                "Remote pricing rules failed validation",
                {
                    "action": "resolve_pricing_rules",
                    "phase": "validation",
                    "errors": list(result.errors),
                },
            )
            return self._fallback()

        assert result.rules is not None
        logger.info("Loaded remote pricing rules version=%s", result.rules.version)
        return ResolvedRules(rules=result.rules, source="remote")
