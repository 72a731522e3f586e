"""Lead submission: validate, persist, and fail open."""

import logging
from datetime import datetime, timezone
from typing import Any, Mapping, Optional, Union

from pydantic import ValidationError

from cejquote.exceptions import ContractError
from cejquote.models import LeadSubmission, LeadSubmissionResult
from cejquote.monitoring import MonitoringReporter
from cejquote.repositories.base import LeadRecord, LeadRepository

logger = logging.getLogger(__name__)


class LeadService:
    """Persist submitted orders as sales leads.

    Persistence problems never block the customer: a missing or failing
    repository still yields `success=True` with a warning code, and the
    failure is reported to monitoring.
    """

    def __init__(
        self,
        repository: Optional[LeadRepository],
        reporter: MonitoringReporter,
    ) -> None:
        self.repository = repository
        self.reporter = reporter

    @staticmethod
    def parse(payload: Union[LeadSubmission, Mapping[str, Any]]) -> LeadSubmission:
        if isinstance(payload, LeadSubmission):
            return payload
        try:
            return LeadSubmission.model_validate(payload)
        except ValidationError as exc:
            raise ContractError(
                "INVALID_LEAD",
                "Lead payload is invalid or incomplete",
                status_code=422,
                details={
                    "fields": [
                        ".".join(str(p) for p in err["loc"]) for err in exc.errors()
                    ]
                },
            ) from exc

    def submit(
        self, payload: Union[LeadSubmission, Mapping[str, Any]]
    ) -> LeadSubmissionResult:
        submission = self.parse(payload)
        folio = submission.quote.folio
        try:
            return self._persist(submission)
        except Exception as exc:
            self.reporter.report_error(
                exc, {"action": "submit_lead", "phase": "unexpected", "folio": folio}
            )
            return LeadSubmissionResult(
                success=True, folio=folio, warning="server_exception"
            )

    def _persist(self, submission: LeadSubmission) -> LeadSubmissionResult:
        order = submission.quote
        folio = order.folio

        if self.repository is None:
            self.reporter.report_warning(
                "Lead not persisted: backend not configured", {"folio": folio}
            )
            return LeadSubmissionResult(
                success=True, folio=folio, warning="db_not_configured"
            )

        record = LeadRecord(
            name=order.customer.name,
            phone=order.customer.phone,
            folio=folio,
            quote_data=order.model_dump(mode="json", by_alias=True),
            visitor_id=submission.visitor_id or order.customer.visitor_id,
            utm_source=submission.utm_source or "direct",
            utm_medium=submission.utm_medium or "none",
            privacy_accepted=submission.privacy_accepted,
            privacy_accepted_at=datetime.now(timezone.utc),
        )

        try:
            lead_id = self.repository.insert_lead(record)
        except Exception as exc:
            self.reporter.report_error(
                exc, {"action": "submit_lead", "phase": "db_insert", "folio": folio}
            )
            return LeadSubmissionResult(
                success=True, folio=folio, warning="db_insert_failed"
            )

        logger.info("Lead stored: id=%s folio=%s", lead_id, folio)
        return LeadSubmissionResult(success=True, id=lead_id, folio=folio)
