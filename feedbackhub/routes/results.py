"""Owner-facing results endpoints: responses, stats, CSV export and AI summary."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response

from feedbackhub.middleware.auth import require_user
from feedbackhub.routes.deps import (
    get_ai_client,
    get_form_repository,
    get_response_repository,
    get_request_guard,
)
from feedbackhub.schemas.api import FormStats, SummaryResponse
from feedbackhub.schemas.form import FormSchema
from feedbackhub.services.ai_client import AIClient, AIServiceError, AIServiceUnavailable
from feedbackhub.services.guards import InFlightGuard, OperationInProgress
from feedbackhub.services.repository import FormNotFoundError, FormRepository, ResponseRepository
from feedbackhub.services.results import compute_stats, export_csv, summarize_responses
from feedbackhub.logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter()


def _owned_form(forms: FormRepository, form_id: str, user_id: str) -> FormSchema:
    try:
        return forms.get_owned_form(form_id, user_id)
    except FormNotFoundError:
        raise HTTPException(status_code=404, detail="Form not found")


@router.get("/api/forms/{form_id}/responses")
async def list_responses(
    form_id: str,
    user_id: str = Depends(require_user),
    forms: FormRepository = Depends(get_form_repository),
    responses: ResponseRepository = Depends(get_response_repository),
) -> list[dict]:
    """All responses of an owned form, oldest first."""
    _owned_form(forms, form_id, user_id)
    return [
        record.model_dump(by_alias=True, mode="json")
        for record in responses.list_responses(form_id)
    ]


@router.get("/api/forms/{form_id}/stats")
async def form_stats(
    form_id: str,
    user_id: str = Depends(require_user),
    forms: FormRepository = Depends(get_form_repository),
    responses: ResponseRepository = Depends(get_response_repository),
) -> dict:
    form = _owned_form(forms, form_id, user_id)
    stats: FormStats = compute_stats(form, responses.list_responses(form_id))
    return stats.model_dump(by_alias=True)


@router.get("/api/forms/{form_id}/export.csv")
async def export_responses(
    form_id: str,
    user_id: str = Depends(require_user),
    forms: FormRepository = Depends(get_form_repository),
    responses: ResponseRepository = Depends(get_response_repository),
) -> Response:
    """Download responses as CSV, one column per field."""
    form = _owned_form(forms, form_id, user_id)
    content = export_csv(form, responses.list_responses(form_id))
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{form_id}-responses.csv"'},
    )


@router.post("/api/forms/{form_id}/summary")
def summarize(
    form_id: str,
    user_id: str = Depends(require_user),
    forms: FormRepository = Depends(get_form_repository),
    responses: ResponseRepository = Depends(get_response_repository),
    ai_client: Optional[AIClient] = Depends(get_ai_client),
    guard: InFlightGuard = Depends(get_request_guard),
) -> dict:
    """Summarize the free-text feedback of an owned form.

    Raises:
        HTTPException: 409 while a summary for this form is running, 503
            when AI is not configured, 502 when the AI request fails
    """
    form = _owned_form(forms, form_id, user_id)
    try:
        with guard.hold(("summary", form_id)):
            summary, count = summarize_responses(
                form, responses.list_responses(form_id), ai_client
            )
    except OperationInProgress:
        raise HTTPException(status_code=409, detail="A summary is already being generated")
    except AIServiceUnavailable:
        raise HTTPException(status_code=503, detail="AI features are not configured")
    except AIServiceError:
        raise HTTPException(
            status_code=502,
            detail="Failed to generate summary, please try again later",
        )

    return SummaryResponse(summary=summary, feedback_count=count).model_dump(by_alias=True)
