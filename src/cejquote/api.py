"""FastAPI application for the concrete quote service."""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

from fastapi import APIRouter, Depends, FastAPI, Request, status
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from cejquote.business import ESTIMATE_LEGEND
from cejquote.config import QuoteConfig, get_config
from cejquote.dependencies import (
    build_app_resources,
    get_app_config,
    get_lead_service,
    get_resolver,
)
from cejquote.exceptions import ContractError
from cejquote.lead_service import LeadService
from cejquote.models import (
    CalculatorState,
    FormattedTotals,
    LeadSubmission,
    LeadSubmissionResult,
    OrderPayload,
    OrderRequest,
    PricingRulesResponse,
    QuoteBreakdown,
    QuoteResponse,
)
from cejquote.orders import generate_folio, map_quote_to_order
from cejquote.pricing import format_cents, quote_from_state
from cejquote.resolver import PricingConfigResolver

logger = logging.getLogger(__name__)

SERVICE_VERSION = "1.0.0"

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["60/minute"],
    swallow_errors=True,
)

router = APIRouter()


@router.get("/health")
@limiter.exempt
async def health_check() -> Dict[str, Any]:
    """Health check endpoint for container orchestration."""
    return {
        "status": "healthy",
        "service": "concrete-quote",
        "version": SERVICE_VERSION,
    }


@router.get("/pricing/rules", response_model=PricingRulesResponse)
@limiter.limit("30/minute")
async def get_pricing_rules(
    request: Request,
    resolver: PricingConfigResolver = Depends(get_resolver),
) -> PricingRulesResponse:
    """Return the active rule set and whether it came from the backend."""
    resolved = await run_in_threadpool(resolver.resolve_with_source)
    return PricingRulesResponse(
        source=resolved.source, rules=resolved.rules.to_payload()
    )


def _format_totals(quote: QuoteBreakdown) -> FormattedTotals:
    currency = quote.pricing_snapshot.currency
    return FormattedTotals(
        unit_price_per_m3=format_cents(quote.unit_price_per_m3, currency),
        subtotal=format_cents(quote.subtotal, currency),
        vat=format_cents(quote.vat, currency),
        total=format_cents(quote.total, currency),
    )


@router.post(
    "/quote",
    response_model=QuoteResponse,
    status_code=status.HTTP_200_OK,
    responses={
        409: {"description": "No price tier configured for the selection"},
        422: {"description": "Invalid volume or missing selection"},
        429: {"description": "Rate limit exceeded"},
    },
)
@limiter.limit("30/minute")
async def create_quote(
    request: Request,
    state: CalculatorState,
    config: QuoteConfig = Depends(get_app_config),
    resolver: PricingConfigResolver = Depends(get_resolver),
) -> QuoteResponse:
    """Price a calculator draft against the active rules."""
    rules = await run_in_threadpool(resolver.resolve)
    quote = quote_from_state(
        state,
        rules,
        step=config.volume_step_m3,
        max_m3=config.max_web_order_m3,
    )
    logger.info(
        "Quote computed: type=%s strength=%s billed_m3=%s total=%s rules_version=%s",
        quote.concrete_type,
        quote.strength,
        quote.volume.billed_m3,
        quote.total,
        rules.version,
    )
    return QuoteResponse(
        quote=quote, formatted=_format_totals(quote), legend=ESTIMATE_LEGEND
    )


@router.post(
    "/orders",
    response_model=OrderPayload,
    status_code=status.HTTP_201_CREATED,
    responses={
        409: {"description": "No price tier configured for the selection"},
        422: {"description": "Invalid volume, selection or contact details"},
        429: {"description": "Rate limit exceeded"},
    },
)
@limiter.limit("10/minute")
async def create_order(
    request: Request,
    order_request: OrderRequest,
    config: QuoteConfig = Depends(get_app_config),
    resolver: PricingConfigResolver = Depends(get_resolver),
) -> OrderPayload:
    """Price a draft and issue a folio; the payload is ready for /leads."""
    rules = await run_in_threadpool(resolver.resolve)
    quote = quote_from_state(
        order_request.draft,
        rules,
        step=config.volume_step_m3,
        max_m3=config.max_web_order_m3,
    )
    folio = generate_folio(config.folio_prefix)
    logger.info(
        "Order issued: folio=%s total=%s rules_version=%s",
        folio,
        quote.total,
        rules.version,
    )
    return map_quote_to_order(
        folio, order_request.customer, quote, metadata=order_request.metadata
    )


@router.post(
    "/leads",
    response_model=LeadSubmissionResult,
    response_model_exclude_none=True,
    status_code=status.HTTP_200_OK,
    responses={429: {"description": "Rate limit exceeded"}},
)
@limiter.limit("10/minute")
async def submit_lead(
    request: Request,
    submission: LeadSubmission,
    lead_service: LeadService = Depends(get_lead_service),
) -> LeadSubmissionResult:
    """Persist an order as a sales lead; persistence failures still succeed."""
    return await run_in_threadpool(lead_service.submit, submission)


async def rate_limit_exceeded_handler(
    request: Request, exc: RateLimitExceeded
) -> JSONResponse:
    """Rate limit exceeded handler."""
    return JSONResponse(
        status_code=429,
        content={"detail": "Rate limit exceeded. Please try again later."},
    )


async def contract_error_handler(request: Request, exc: ContractError) -> JSONResponse:
    """Map domain contract errors to stable API error payload."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": {
                "code": exc.code,
                "message": exc.message,
                "details": exc.details,
            }
        },
    )


def create_app(config: Optional[QuoteConfig] = None) -> FastAPI:
    """Build the API app; resources are created in the lifespan."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        app_config = config or get_config()
        app.state.cejquote_resources = build_app_resources(app_config)
        logger.info(
            "Quote service started: pricing backend configured=%s",
            app.state.cejquote_resources.supabase_client_provider.configured,
        )
        yield
        app.state.cejquote_resources = None

    app = FastAPI(
        title="Concrete Quote Service",
        description="Price ready-mix concrete orders from live or fallback rules",
        version=SERVICE_VERSION,
        lifespan=lifespan,
    )

    origins = (config or get_config()).get_allowed_origins()
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)  # type: ignore[arg-type]
    app.add_exception_handler(ContractError, contract_error_handler)  # type: ignore[arg-type]
    app.include_router(router)
    return app


app = create_app()


def main() -> None:
    """Run API server."""
    import uvicorn

    config = get_config()
    uvicorn.run(
        "cejquote.api:app",
        host=config.api_host,
        port=config.api_port,
        reload=False,
    )


if __name__ == "__main__":
    main()
