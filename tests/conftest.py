"""Shared test fixtures."""

import copy
from collections.abc import Generator
from types import SimpleNamespace
from typing import Any, Optional

import pytest
from fastapi.testclient import TestClient

from cejquote.api import create_app, limiter
from cejquote.config import QuoteConfig
from cejquote.dependencies import get_lead_service, get_resolver
from cejquote.lead_service import LeadService
from cejquote.monitoring import MonitoringReporter
from cejquote.repositories.memory import InMemoryLeadRepository
from cejquote.resolver import PricingConfigResolver
from cejquote.rules import PricingRules, parse_pricing_rules

RULES_PAYLOAD: dict[str, Any] = {
    "version": 7,
    "lastUpdated": "2025-03-01T00:00:00Z",
    "vatRate": 0.16,
    "currency": "MXN",
    "minOrderQuantity": {"direct": 2, "pumped": 3},
    "base": {
        "direct": {
            "200": [
                {"minM3": 2, "pricePerM3Cents": 273100},
                {"minM3": 3, "pricePerM3Cents": 248100},
            ],
            "250": [
                {"minM3": 2, "pricePerM3Cents": 301800},
                {"minM3": 3, "pricePerM3Cents": 276900},
            ],
        },
        "pumped": {
            "200": [
                {"minM3": 3, "pricePerM3Cents": 300800},
                {"minM3": 5, "pricePerM3Cents": 295800},
            ],
            "250": [
                {"minM3": 3, "pricePerM3Cents": 325900},
                {"minM3": 5, "pricePerM3Cents": 316700},
            ],
        },
    },
    "additives": [
        {
            "id": "fiber",
            "label": "Fibra",
            "pricingModel": "per_m3",
            "priceCents": 35000,
        },
        {
            "id": "express",
            "label": "Entrega express",
            "pricingModel": "fixed",
            "priceCents": 50000,
        },
        {
            "id": "waterproof",
            "label": "Impermeabilizante",
            "active": False,
            "pricingModel": "per_m3",
            "priceCents": 20000,
        },
    ],
}


class FakeQuery:
    """Chainable stand-in for a PostgREST request builder."""

    def __init__(self, client: "FakeSupabaseClient", table: str) -> None:
        self.client = client
        self.table_name = table
        self.calls: list[tuple[str, Any]] = []

    def select(self, columns: str) -> "FakeQuery":
        self.calls.append(("select", columns))
        return self

    def limit(self, n: int) -> "FakeQuery":
        self.calls.append(("limit", n))
        return self

    def insert(self, row: dict[str, Any]) -> "FakeQuery":
        self.calls.append(("insert", row))
        self.client.inserted.append(row)
        return self

    def execute(self) -> SimpleNamespace:
        self.client.executed += 1
        if self.client.error is not None:
            raise self.client.error
        if any(name == "insert" for name, _ in self.calls):
            return SimpleNamespace(data=[{"id": 101}])
        return SimpleNamespace(data=self.client.rows)


class FakeSupabaseClient:
    """Minimal Supabase client double with canned rows or a canned error."""

    def __init__(
        self,
        rows: Optional[list[dict[str, Any]]] = None,
        error: Optional[Exception] = None,
    ) -> None:
        self.rows = rows if rows is not None else []
        self.error = error
        self.queries: list[FakeQuery] = []
        self.inserted: list[dict[str, Any]] = []
        self.executed = 0

    def table(self, name: str) -> FakeQuery:
        query = FakeQuery(self, name)
        self.queries.append(query)
        return query


class FakeClientProvider:
    def __init__(self, client: Optional[Any]) -> None:
        self.client = client

    @property
    def configured(self) -> bool:
        return self.client is not None

    def get_client(self) -> Optional[Any]:
        return self.client


class ReporterSpy(MonitoringReporter):
    """Monitoring reporter that records reports instead of delivering them."""

    def __init__(self) -> None:
        super().__init__(webhook_url=None)
        self.errors: list[tuple[Any, dict[str, Any]]] = []
        self.warnings: list[tuple[str, dict[str, Any]]] = []

    def report_error(self, error: Any, context: Optional[dict[str, Any]] = None) -> None:
        self.errors.append((error, context or {}))

    def report_warning(self, message: str, context: Optional[dict[str, Any]] = None) -> None:
        self.warnings.append((message, context or {}))

    @property
    def events(self) -> int:
        return len(self.errors) + len(self.warnings)


@pytest.fixture
def rules_payload() -> dict[str, Any]:
    """Fresh, mutable copy of a valid camelCase rule payload."""
    return copy.deepcopy(RULES_PAYLOAD)


@pytest.fixture
def test_rules(rules_payload: dict[str, Any]) -> PricingRules:
    return parse_pricing_rules(rules_payload)


@pytest.fixture
def reporter() -> ReporterSpy:
    return ReporterSpy()


@pytest.fixture
def remote_client(rules_payload: dict[str, Any]) -> FakeSupabaseClient:
    return FakeSupabaseClient(rows=[{"pricing_rules": rules_payload}])


@pytest.fixture
def lead_repository() -> InMemoryLeadRepository:
    return InMemoryLeadRepository()


@pytest.fixture
def api_test_config() -> QuoteConfig:
    """Provide a test-owned API config instance."""
    return QuoteConfig(
        _env_file=None,
        supabase_url=None,
        supabase_service_role_key=None,
        allowed_origins="http://localhost:3000",
        volume_step_m3=0.5,
        max_web_order_m3=500,
        folio_prefix="TST",
    )


@pytest.fixture
def api_test_app(
    api_test_config: QuoteConfig,
    remote_client: FakeSupabaseClient,
    reporter: ReporterSpy,
    lead_repository: InMemoryLeadRepository,
) -> Generator[Any, None, None]:
    """Create a fresh FastAPI app backed by fake collaborators."""
    limiter.reset()
    app = create_app(api_test_config)
    resolver = PricingConfigResolver(FakeClientProvider(remote_client), reporter)
    lead_service = LeadService(lead_repository, reporter)
    app.dependency_overrides[get_resolver] = lambda: resolver
    app.dependency_overrides[get_lead_service] = lambda: lead_service
    try:
        yield app
    finally:
        app.dependency_overrides.clear()
        limiter.reset()


@pytest.fixture
def api_test_client(api_test_app: Any) -> Generator[TestClient, None, None]:
    """Create a TestClient for the overridden API app."""
    with TestClient(api_test_app) as client:
        yield client
