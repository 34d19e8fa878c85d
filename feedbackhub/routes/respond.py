"""Respondent-facing endpoints.

Forms are public to respondents: anyone with the form id can render and
answer it. Each request builds a FormSession for the stored form, binds the
posted values through the form's widgets and submits through the
ResponseAssembler.
"""

from contextlib import nullcontext
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import HTMLResponse, JSONResponse

from feedbackhub.middleware.auth import get_optional_user
from feedbackhub.routes.deps import (
    get_form_repository,
    get_request_guard,
    get_response_repository,
)
from feedbackhub.schemas.api import SubmissionErrorResponse, SubmissionRequest
from feedbackhub.schemas.form import FieldType, FormSchema, ResponseRecord
from feedbackhub.services.form_renderer import FormSession
from feedbackhub.services.guards import InFlightGuard, OperationInProgress
from feedbackhub.services.repository import (
    FormNotFoundError,
    FormRepository,
    PersistenceError,
    ResponseRepository,
)
from feedbackhub.services.response_assembler import ResponseAssembler, SubmissionRejected
from feedbackhub.services.template_renderer import get_template_renderer
from feedbackhub.logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter()

SAVE_FAILED_NOTICE = "Your response could not be saved. Please try again."


def _load_public_form(forms: FormRepository, form_id: str) -> FormSchema:
    try:
        return forms.get_form(form_id)
    except FormNotFoundError:
        raise HTTPException(status_code=404, detail="Form not found")


def _rejection(errors: dict[str, str]) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content=SubmissionErrorResponse(errors=errors).model_dump(by_alias=True),
    )


def _submit(
    session: FormSession,
    responses: ResponseRepository,
    guard: InFlightGuard,
    user_id: Optional[str],
) -> ResponseRecord:
    """Submit a session, one submission per signed-in respondent and form at a time.

    Anonymous respondents have no identity to key on and are not guarded
    across requests.
    """
    key = ("submit", session.form.id, user_id)
    with guard.hold(key) if user_id else nullcontext():
        return ResponseAssembler(responses).submit(session, user_id=user_id)


@router.get("/api/forms/{form_id}/render")
async def render_form(
    form_id: str,
    forms: FormRepository = Depends(get_form_repository),
) -> dict:
    """Widget descriptions for a form with fresh initial values."""
    form = _load_public_form(forms, form_id)
    session = FormSession(form)
    return {
        "form": form.model_dump(by_alias=True, mode="json", exclude={"created_by"}),
        "widgets": session.describe(),
    }


@router.post("/api/forms/{form_id}/responses", status_code=201)
def submit_response(
    form_id: str,
    body: SubmissionRequest,
    user_id: Optional[str] = Depends(get_optional_user),
    forms: FormRepository = Depends(get_form_repository),
    responses: ResponseRepository = Depends(get_response_repository),
    guard: InFlightGuard = Depends(get_request_guard),
):
    """Validate and store one response.

    Returns:
        The stored response (201), or 422 with a field id to message map
        when any answer is invalid

    Raises:
        HTTPException: 404 for an unknown form, 409 for a duplicate
            submission, 502 if the response cannot be saved
    """
    form = _load_public_form(forms, form_id)
    session = FormSession(form)

    binding_errors = session.fill(body.answers)
    if binding_errors:
        return _rejection(binding_errors)

    try:
        record = _submit(session, responses, guard, user_id)
    except SubmissionRejected as e:
        return _rejection(e.errors)
    except OperationInProgress:
        raise HTTPException(status_code=409, detail="Submission already in progress")
    except PersistenceError:
        raise HTTPException(status_code=502, detail=SAVE_FAILED_NOTICE)

    return record.model_dump(by_alias=True, mode="json")


@router.get("/forms/{form_id}/respond", response_class=HTMLResponse)
async def respond_page(
    form_id: str,
    forms: FormRepository = Depends(get_form_repository),
) -> HTMLResponse:
    """HTML page for answering a form."""
    renderer = get_template_renderer()
    try:
        form = forms.get_form(form_id)
    except FormNotFoundError:
        return HTMLResponse(renderer.render_not_found(), status_code=404)
    return HTMLResponse(renderer.render_form(FormSession(form)))


def _form_values(form: FormSchema, form_data) -> dict[str, Any]:
    """Extract posted values per field; unchecked checkbox groups post nothing."""
    values: dict[str, Any] = {}
    for field in form.fields:
        if field.field_type == FieldType.CHECKBOX:
            values[field.id] = form_data.getlist(field.id)
        elif field.id in form_data:
            values[field.id] = form_data.get(field.id)
    return values


@router.post("/forms/{form_id}/respond", response_class=HTMLResponse)
async def respond_submit(
    form_id: str,
    request: Request,
    user_id: Optional[str] = Depends(get_optional_user),
    forms: FormRepository = Depends(get_form_repository),
    responses: ResponseRepository = Depends(get_response_repository),
    guard: InFlightGuard = Depends(get_request_guard),
) -> HTMLResponse:
    """Handle the HTML form post.

    Invalid answers re-render the form with the entered values and inline
    messages. A failed save re-renders it with a notice so the respondent
    can retry without retyping.
    """
    renderer = get_template_renderer()
    try:
        form = forms.get_form(form_id)
    except FormNotFoundError:
        return HTMLResponse(renderer.render_not_found(), status_code=404)

    session = FormSession(form)
    form_data = await request.form()
    binding_errors = session.fill(_form_values(form, form_data))
    if binding_errors:
        return HTMLResponse(renderer.render_form(session, errors=binding_errors), status_code=422)

    try:
        await run_in_threadpool(_submit, session, responses, guard, user_id)
    except SubmissionRejected as e:
        return HTMLResponse(renderer.render_form(session, errors=e.errors), status_code=422)
    except OperationInProgress:
        return HTMLResponse(
            renderer.render_form(session, notice="Your response is already being submitted."),
            status_code=409,
        )
    except PersistenceError:
        return HTMLResponse(
            renderer.render_form(session, notice=SAVE_FAILED_NOTICE),
            status_code=502,
        )

    return HTMLResponse(renderer.render_thank_you(form.title))
