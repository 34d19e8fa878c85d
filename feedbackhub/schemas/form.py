"""Pydantic schemas for form definitions and responses.

This module defines the structure and validation rules for forms authored in
the builder, loaded from storage or read from template YAML files, and for
the response records created when a respondent submits a form.

JSON payloads use camelCase keys (``isAnonymous``, ``minRating``, ``formId``);
Python attributes are snake_case.
"""

import re
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel


class FieldType(str, Enum):
    """Input types a form field can declare."""
    TEXT = "text"
    TEXTAREA = "textarea"
    SELECT = "select"
    RADIO = "radio"
    CHECKBOX = "checkbox"
    RATING = "rating"
    NPS = "nps"
    DATE = "date"
    EMAIL = "email"
    NUMBER = "number"


# Types whose answers are picked from the field's option list
OPTION_TYPES = frozenset({FieldType.SELECT, FieldType.RADIO, FieldType.CHECKBOX})

DEFAULT_MAX_RATING = 5
NPS_MIN = 0
NPS_MAX = 10


def option_value_from_label(label: str) -> str:
    """Derive an option value from its label.

    Example:
        >>> option_value_from_label("No follow-up needed")
        'no-follow-up-needed'
    """
    return re.sub(r"\s+", "-", label.lower())


class CamelModel(BaseModel):
    """Base model accepting and emitting camelCase keys."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class FieldOption(CamelModel):
    """A single option of a select, radio or checkbox field.

    Attributes:
        label: Text shown to the respondent (e.g., "Very Likely")
        value: Value stored in answers (e.g., "very_likely")
    """
    label: str = Field(..., min_length=1, description="Display text for option")
    value: str = Field(..., min_length=1, description="Value stored in answers")

    @model_validator(mode="before")
    @classmethod
    def derive_value(cls, data: Any) -> Any:
        """Fill in a missing value from the label."""
        if isinstance(data, dict) and not data.get("value") and data.get("label"):
            data = dict(data)
            data["value"] = option_value_from_label(data["label"])
        return data


class FieldSchema(CamelModel):
    """Declarative description of one question.

    ``type`` is kept as a plain string so that stored forms written with a
    type this version does not know still load; ``field_type`` resolves it to
    a FieldType or None.

    Attributes:
        id: Unique identifier within the form
        text: Question text (``label`` is accepted as an alias)
        type: Input type
        required: Whether an answer must be given
        placeholder: Placeholder shown in empty inputs
        description: Helper text shown under the label
        options: Choices for select/radio/checkbox fields
        min_rating: Lower bound for number fields
        max_rating: Scale length for rating fields
    """
    id: str = Field(..., min_length=1, description="Unique field identifier")
    text: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("text", "label"),
        description="Question text",
    )
    type: str = Field(..., min_length=1, description="Field input type")
    required: bool = Field(default=False, description="Whether an answer is required")
    placeholder: Optional[str] = Field(None, description="Input placeholder")
    description: Optional[str] = Field(None, description="Helper text")
    options: Optional[list[FieldOption]] = Field(None, description="Options for choice fields")
    min_rating: Optional[int] = Field(None, description="Minimum numeric value")
    max_rating: Optional[int] = Field(None, ge=1, description="Maximum rating value")

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type(cls, v):
        """Accept FieldType members and normalize case."""
        if isinstance(v, FieldType):
            return v.value
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @model_validator(mode="after")
    def validate_field_requirements(self):
        """Validate type-specific requirements."""
        if self.field_type in OPTION_TYPES:
            if not self.options:
                raise ValueError(f"Field '{self.id}' of type {self.type} must have options")
            values = [option.value for option in self.options]
            if len(values) != len(set(values)):
                duplicates = sorted({v for v in values if values.count(v) > 1})
                raise ValueError(f"Field '{self.id}' has duplicate option values: {duplicates}")

        if self.min_rating is not None and self.max_rating is not None:
            if self.min_rating > self.max_rating:
                raise ValueError(f"Field '{self.id}': minRating must be <= maxRating")

        return self

    @property
    def field_type(self) -> Optional[FieldType]:
        """Resolved field type, or None when the type is not recognised."""
        try:
            return FieldType(self.type)
        except ValueError:
            return None

    @property
    def label(self) -> str:
        return self.text

    def option_values(self) -> list[str]:
        return [option.value for option in self.options or []]


class FormSchema(CamelModel):
    """Complete form definition.

    Attributes:
        id: Form identifier
        title: Form title shown to respondents
        description: Optional introduction text
        fields: Ordered fields; order drives display and export column order
        is_anonymous: Whether respondent identity is dropped from responses
        created_by: User id of the owner
        created_at: Creation time
        updated_at: Last modification time
    """
    id: str = Field(..., min_length=1, description="Form identifier")
    title: str = Field(..., min_length=1, description="Form title")
    description: Optional[str] = Field(None, description="Form description")
    fields: list[FieldSchema] = Field(..., min_length=1)
    is_anonymous: bool = Field(default=False, description="Drop respondent identity")
    created_by: str = Field(..., min_length=1, description="Owner user id")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: str) -> str:
        """Reject whitespace-only titles."""
        if not v.strip():
            raise ValueError("Title must not be blank")
        return v

    @model_validator(mode="after")
    def validate_unique_field_ids(self):
        """Check for duplicate field IDs."""
        field_ids = [field.id for field in self.fields]
        if len(field_ids) != len(set(field_ids)):
            duplicates = sorted({fid for fid in field_ids if field_ids.count(fid) > 1})
            raise ValueError(f"Duplicate field IDs found: {duplicates}")
        return self

    def get_field(self, field_id: str) -> Optional[FieldSchema]:
        """Get field by ID.

        Args:
            field_id: Field identifier

        Returns:
            FieldSchema if found, None otherwise
        """
        for field in self.fields:
            if field.id == field_id:
                return field
        return None

    def field_ids(self) -> list[str]:
        return [field.id for field in self.fields]


class ResponseRecord(CamelModel):
    """One respondent's submitted answers.

    Attributes:
        id: Response identifier
        form_id: Identifier of the answered form
        answers: Field id to answer; str, number or list of option values
        user_id: Respondent user id (None for anonymous forms)
        timestamp: Submission time
    """
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    form_id: str = Field(..., min_length=1)
    answers: dict[str, Any] = Field(default_factory=dict)
    user_id: Optional[str] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class FormTemplate(CamelModel):
    """Reusable form layout loaded from a YAML template file.

    Attributes:
        id: Template identifier (matches YAML filename)
        title: Default form title
        description: Default form description
        is_anonymous: Default anonymity setting
        fields: Field definitions
    """
    id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    is_anonymous: bool = False
    fields: list[FieldSchema] = Field(..., min_length=1)

    @field_validator("id")
    @classmethod
    def id_alphanumeric(cls, v):
        """Ensure ID is alphanumeric with underscores/hyphens only."""
        if not v.replace("_", "").replace("-", "").isalnum():
            raise ValueError("Template ID must be alphanumeric with underscores/hyphens")
        return v
