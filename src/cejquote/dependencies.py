"""Shared FastAPI app resource container and provider dependencies."""

from __future__ import annotations

from dataclasses import dataclass
from typing import cast

from fastapi import Depends, HTTPException, Request, status

from cejquote.config import QuoteConfig
from cejquote.lead_service import LeadService
from cejquote.monitoring import MonitoringReporter
from cejquote.repositories.supabase import SupabaseLeadRepository
from cejquote.resolver import PricingConfigResolver
from cejquote.supabase_client import SupabaseClientProvider


@dataclass
class AppResources:
    """App-scoped resources initialized during FastAPI lifespan."""

    config: QuoteConfig
    supabase_client_provider: SupabaseClientProvider
    reporter: MonitoringReporter
    resolver: PricingConfigResolver
    lead_service: LeadService


def build_app_resources(config: QuoteConfig) -> AppResources:
    """Wire app-scoped collaborators from configuration."""
    provider = SupabaseClientProvider(config.supabase_settings())
    reporter = MonitoringReporter(
        config.monitoring_webhook_url, timeout_sec=config.monitoring_timeout_sec
    )
    resolver = PricingConfigResolver(
        provider,
        reporter,
        table=config.pricing_table,
        column=config.pricing_column,
    )
    repository = SupabaseLeadRepository(provider) if provider.configured else None
    return AppResources(
        config=config,
        supabase_client_provider=provider,
        reporter=reporter,
        resolver=resolver,
        lead_service=LeadService(repository, reporter),
    )


def get_app_resources(request: Request) -> AppResources:
    """Return initialized app resources from state."""
    resources = getattr(request.app.state, "cejquote_resources", None)
    if resources is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Application resources are not initialized",
        )
    return cast(AppResources, resources)


def get_app_config(resources: AppResources = Depends(get_app_resources)) -> QuoteConfig:
    """Get app-scoped config instance."""
    return resources.config


def get_resolver(
    resources: AppResources = Depends(get_app_resources),
) -> PricingConfigResolver:
    """Get app-scoped pricing rule resolver."""
    return resources.resolver


def get_lead_service(
    resources: AppResources = Depends(get_app_resources),
) -> LeadService:
    """Get app-scoped lead submission service."""
    return resources.lead_service
