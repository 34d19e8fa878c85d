"""Pydantic schemas for HTTP request and response bodies."""

from typing import Any, Optional

from pydantic import Field

from feedbackhub.schemas.form import CamelModel, FieldOption, FieldSchema, FieldType


class FormCreateRequest(CamelModel):
    """Body of a form creation request.

    Attributes:
        title: Form title
        description: Optional form description
        fields: Ordered field definitions
        is_anonymous: Whether responses drop respondent identity
        template_id: Start from this template; fields given here are appended
    """
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    fields: list[FieldSchema] = Field(default_factory=list)
    is_anonymous: bool = False
    template_id: Optional[str] = None


class SubmissionRequest(CamelModel):
    """Answers posted by a respondent, keyed by field id."""
    answers: dict[str, Any] = Field(default_factory=dict)


class SubmissionErrorResponse(CamelModel):
    """Returned when a submission is blocked by validation."""
    error: str = "Validation failed"
    errors: dict[str, str]


class SuggestedQuestion(CamelModel):
    """A question proposed by the AI text service.

    Attributes:
        label: Question text
        type: Proposed field type
        options: Proposed options for choice types
    """
    label: str = Field(..., min_length=1)
    type: FieldType
    options: list[FieldOption] = Field(default_factory=list)


class QuestionSuggestionRequest(CamelModel):
    topic: str = Field(..., min_length=1, max_length=1200)


class QuestionSuggestionResponse(CamelModel):
    questions: list[SuggestedQuestion]


class SummaryResponse(CamelModel):
    summary: str
    feedback_count: int


class ScaleStats(CamelModel):
    """Average and distribution of a rating or NPS field."""
    field_id: str
    label: str
    scale_max: int
    average: float
    distribution: dict[str, int]


class ChoiceStats(CamelModel):
    """Per-option counts of a select, radio or checkbox field."""
    field_id: str
    label: str
    counts: dict[str, int]


class FormStats(CamelModel):
    """Aggregate results for one form."""
    form_id: str
    total_responses: int
    scales: list[ScaleStats] = Field(default_factory=list)
    choices: list[ChoiceStats] = Field(default_factory=list)
