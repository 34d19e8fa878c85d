"""Form management and template endpoints.

Form routes are scoped to the authenticated owner: forms owned by another
user are reported as not found.
"""

from fastapi import APIRouter, Depends, HTTPException, Response

from feedbackhub.middleware.auth import require_user
from feedbackhub.routes.deps import get_form_repository, get_template_loader
from feedbackhub.schemas.api import FormCreateRequest
from feedbackhub.schemas.form import FieldSchema
from feedbackhub.services.form_builder import FormBuilder, FormBuilderError
from feedbackhub.services.repository import FormNotFoundError, FormRepository, PersistenceError
from feedbackhub.services.template_loader import (
    FormTemplateLoader,
    TemplateNotFoundError,
    TemplateValidationError,
)
from feedbackhub.logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter()


def _add_schema_field(builder: FormBuilder, field: FieldSchema) -> None:
    draft = field.model_dump(exclude_none=True)
    builder.add_field(field_id=draft.pop("id"), **draft)


def _load_template(loader: FormTemplateLoader, template_id: str):
    try:
        return loader.load_template(template_id)
    except TemplateNotFoundError:
        raise HTTPException(status_code=404, detail=f"Template '{template_id}' not found")
    except TemplateValidationError:
        raise HTTPException(status_code=500, detail=f"Template '{template_id}' is invalid")


@router.post("/api/forms", status_code=201)
async def create_form(
    body: FormCreateRequest,
    user_id: str = Depends(require_user),
    forms: FormRepository = Depends(get_form_repository),
    loader: FormTemplateLoader = Depends(get_template_loader),
) -> dict:
    """Create a form, optionally starting from a template.

    When ``templateId`` is given the template's fields come first and the
    request's fields are appended; title, description and anonymity always
    come from the request.

    Raises:
        HTTPException: 400 if the form is invalid, 404 for an unknown
            template, 502 if the form cannot be saved
    """
    if body.template_id:
        builder = FormBuilder.from_template(_load_template(loader, body.template_id))
        builder.title = body.title
        builder.description = body.description
        builder.is_anonymous = body.is_anonymous
    else:
        builder = FormBuilder(
            title=body.title,
            description=body.description,
            is_anonymous=body.is_anonymous,
        )

    try:
        for field in body.fields:
            _add_schema_field(builder, field)
        form = builder.build(created_by=user_id)
    except FormBuilderError as e:
        raise HTTPException(status_code=400, detail=str(e))

    try:
        forms.create_form(form)
    except PersistenceError:
        raise HTTPException(status_code=502, detail="Could not save form, please try again")

    return form.model_dump(by_alias=True, mode="json")


@router.get("/api/forms")
async def list_forms(
    user_id: str = Depends(require_user),
    forms: FormRepository = Depends(get_form_repository),
) -> list[dict]:
    """List the caller's forms, newest first."""
    return [form.model_dump(by_alias=True, mode="json") for form in forms.list_forms(user_id)]


@router.get("/api/forms/{form_id}")
async def get_form(
    form_id: str,
    user_id: str = Depends(require_user),
    forms: FormRepository = Depends(get_form_repository),
) -> dict:
    try:
        form = forms.get_owned_form(form_id, user_id)
    except FormNotFoundError:
        raise HTTPException(status_code=404, detail="Form not found")
    return form.model_dump(by_alias=True, mode="json")


@router.delete("/api/forms/{form_id}", status_code=204)
async def delete_form(
    form_id: str,
    user_id: str = Depends(require_user),
    forms: FormRepository = Depends(get_form_repository),
) -> Response:
    """Delete a form and all of its responses."""
    try:
        forms.delete_form(form_id, user_id)
    except FormNotFoundError:
        raise HTTPException(status_code=404, detail="Form not found")
    except PersistenceError:
        raise HTTPException(status_code=502, detail="Could not delete form, please try again")
    return Response(status_code=204)


@router.get("/api/templates")
async def list_templates(loader: FormTemplateLoader = Depends(get_template_loader)) -> dict:
    return {"templates": loader.list_templates()}


@router.get("/api/templates/{template_id}")
async def get_template(
    template_id: str,
    loader: FormTemplateLoader = Depends(get_template_loader),
) -> dict:
    return _load_template(loader, template_id).model_dump(by_alias=True, mode="json")
