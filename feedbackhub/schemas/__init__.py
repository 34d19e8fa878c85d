"""Pydantic schemas for data validation.

This package contains all Pydantic models for form definitions, responses
and HTTP payloads.
"""

from feedbackhub.schemas.form import (
    FieldType,
    FieldOption,
    FieldSchema,
    FormSchema,
    ResponseRecord,
    FormTemplate,
)
from feedbackhub.schemas.api import (
    FormCreateRequest,
    SubmissionRequest,
    SuggestedQuestion,
    FormStats,
)

__all__ = [
    "FieldType",
    "FieldOption",
    "FieldSchema",
    "FormSchema",
    "ResponseRecord",
    "FormTemplate",
    "FormCreateRequest",
    "SubmissionRequest",
    "SuggestedQuestion",
    "FormStats",
]
