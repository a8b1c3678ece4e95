"""
Tip verification HTTP endpoints.

Security:
- Every endpoint resolves a Caller from the bearer token
- Listing, verification and stats require an investigative role
- Queue actions and review also require a verified account
- Assign requires an elevated role

Endpoints (prefix /tips/verification):
- GET  ""        list verification records joined with a tip summary
- POST ""        verify a tip (201)
- GET  /queue    ordered review queue with derived slaBreached and stats
- POST /queue    claim / assign / release a queue item
- POST /review   complete review of a claimed item
- GET  /stats    verification and queue statistics

Request and response bodies are camelCase; errors render as
``{"error": {"code", "message", "details"}}``.
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from tip_triage.auth import Caller, IdentityProvider, StaticIdentityProvider
from tip_triage.config.settings import settings
from tip_triage.data_management.schemas import (
    PriorityBucket,
    QueueStatus,
    QueueType,
    ReviewOutcome,
    VerificationStatus,
)
from tip_triage.errors import AuthenticationError, TipTriageError, ValidationError
from tip_triage.service import MAX_PAGE_SIZE, DEFAULT_PAGE_SIZE, Page, TipVerificationService
from tip_triage.utils.logging import get_structured_logger

logger = get_structured_logger(__name__, component="api")

bearer = HTTPBearer(auto_error=False)

router = APIRouter(prefix="/tips/verification", tags=["Tip Verification"])


# ============================================================================
# REQUEST SCHEMAS
# ============================================================================


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class VerifyRequest(ApiModel):
    tip_id: str = Field(..., min_length=1)
    force_re_verification: bool = False


class QueueActionRequest(ApiModel):
    queue_item_id: str = Field(..., min_length=1)
    action: str
    assign_to: Optional[str] = None


class ReviewRequest(ApiModel):
    queue_item_id: str = Field(..., min_length=1)
    outcome: ReviewOutcome
    notes: Optional[str] = None
    override_score: Optional[int] = Field(default=None, ge=0, le=100)
    escalate_to: Optional[str] = None


# ============================================================================
# RESPONSE HELPERS
# ============================================================================


def camelize(model: BaseModel) -> Dict[str, Any]:
    """Top-level keys to camelCase; nested mapping keys (ids) are left alone."""
    data = model.model_dump(mode="json")
    return {to_camel(key): value for key, value in data.items()}


def pagination(page: Page) -> Dict[str, Any]:
    return {
        "total": page.total,
        "limit": page.limit,
        "offset": page.offset,
        "hasMore": page.has_more,
    }


# ============================================================================
# DEPENDENCIES
# ============================================================================


def get_service(request: Request) -> TipVerificationService:
    return request.app.state.service


async def get_caller(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
) -> Caller:
    provider: IdentityProvider = request.app.state.identity_provider
    caller = await provider.resolve(credentials.credentials if credentials else None)
    if caller is None:
        raise AuthenticationError()
    return caller


# ============================================================================
# ENDPOINTS
# ============================================================================


@router.get("")
async def list_verifications(
    case_id: Optional[str] = Query(default=None, alias="caseId"),
    status: Optional[VerificationStatus] = Query(default=None),
    priority_bucket: Optional[PriorityBucket] = Query(default=None, alias="priorityBucket"),
    requires_review: Optional[bool] = Query(default=None, alias="requiresReview"),
    limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    offset: int = Query(default=0, ge=0),
    caller: Caller = Depends(get_caller),
    service: TipVerificationService = Depends(get_service),
):
    page = await service.list_verifications(
        caller,
        case_id=case_id,
        status=status,
        priority_bucket=priority_bucket,
        requires_review=requires_review,
        limit=limit,
        offset=offset,
    )
    return {
        "verifications": [
            {**camelize(listing.record), "tip": listing.tip} for listing in page.items
        ],
        "pagination": pagination(page),
    }


@router.post("", status_code=201)
async def verify_tip(
    body: VerifyRequest,
    caller: Caller = Depends(get_caller),
    service: TipVerificationService = Depends(get_service),
):
    outcome = await service.verify(caller, body.tip_id, force=body.force_re_verification)
    record = outcome.record
    return {
        "verification": camelize(record),
        "queueItem": camelize(outcome.queue_item) if outcome.queue_item else None,
        "result": {
            "priorityBucket": record.priority_bucket.value,
            "requiresReview": record.requires_human_review,
            "reviewPriority": record.review_priority,
            "autoActions": record.auto_actions,
            "warnings": [w.model_dump(mode="json") for w in record.warnings],
            "suggestions": record.suggestions,
        },
    }


@router.get("/queue")
async def list_queue(
    queue_type: Optional[QueueType] = Query(default=None, alias="queueType"),
    status: Optional[QueueStatus] = Query(default=QueueStatus.PENDING),
    assigned_to: Optional[str] = Query(default=None, alias="assignedTo"),
    my_queue: bool = Query(default=False, alias="myQueue"),
    limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    offset: int = Query(default=0, ge=0),
    caller: Caller = Depends(get_caller),
    service: TipVerificationService = Depends(get_service),
):
    listing = await service.list_queue(
        caller,
        queue_type=queue_type,
        status=status,
        assigned_to=assigned_to,
        my_queue=my_queue,
        limit=limit,
        offset=offset,
    )
    return {
        "items": [
            {**camelize(entry.item), "slaBreached": entry.sla_breached}
            for entry in listing.page.items
        ],
        "stats": camelize(listing.stats),
        "pagination": pagination(listing.page),
    }


@router.post("/queue")
async def queue_action(
    body: QueueActionRequest,
    caller: Caller = Depends(get_caller),
    service: TipVerificationService = Depends(get_service),
):
    item = await service.queue_action(caller, body.queue_item_id, body.action, body.assign_to)
    return {
        "item": {**camelize(item), "slaBreached": service.queue.is_sla_breached(item)},
    }


@router.post("/review")
async def review_tip(
    body: ReviewRequest,
    caller: Caller = Depends(get_caller),
    service: TipVerificationService = Depends(get_service),
):
    result = await service.review(
        caller,
        body.queue_item_id,
        body.outcome,
        notes=body.notes,
        override_score=body.override_score,
        escalate_to=body.escalate_to,
    )
    return {
        "verification": camelize(result.record),
        "queueItem": camelize(result.queue_item),
        "escalationItem": camelize(result.escalation_item) if result.escalation_item else None,
    }


@router.get("/stats")
async def verification_stats(
    caller: Caller = Depends(get_caller),
    service: TipVerificationService = Depends(get_service),
):
    stats = await service.stats(caller)
    verifications = stats.verifications
    return {
        "verifications": {to_camel(k): v for k, v in verifications.items()},
        "queue": camelize(stats.queue),
    }


# ============================================================================
# APPLICATION
# ============================================================================


async def tip_triage_error_handler(request: Request, exc: TipTriageError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("request_failed", path=request.url.path, code=exc.code, details=exc.details)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    field_errors: Dict[str, list] = {}
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query")]
        field_errors.setdefault(".".join(location) or "body", []).append(error.get("msg", "invalid"))
    error = ValidationError("Request validation failed", field_errors=field_errors)
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


def create_app(
    service: TipVerificationService,
    identity_provider: Optional[IdentityProvider] = None,
) -> FastAPI:
    """Build the FastAPI application around a service and an identity provider.

    Without an explicit provider, tokens are read from
    ``settings.identity_tokens_path``; with neither, every request is 401.
    """
    if identity_provider is None:
        identity_provider = (
            StaticIdentityProvider.from_file(settings.identity_tokens_path)
            if settings.identity_tokens_path
            else StaticIdentityProvider()
        )

    app = FastAPI(title="Tip Verification & Triage Engine")
    app.state.service = service
    app.state.identity_provider = identity_provider
    app.include_router(router)
    app.add_exception_handler(TipTriageError, tip_triage_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    return app


__all__ = [
    "router",
    "create_app",
    "camelize",
    "VerifyRequest",
    "QueueActionRequest",
    "ReviewRequest",
]
