"""Form builder service.

The builder holds a mutable draft of a form while its owner edits it and
turns the draft into a validated FormSchema on save. Drafts may be invalid
while being edited (blank labels, missing options); validation happens in
build().
"""

import copy
import secrets
import string
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import ValidationError

from feedbackhub.schemas.api import SuggestedQuestion
from feedbackhub.schemas.form import (
    FieldSchema,
    FieldType,
    FormSchema,
    FormTemplate,
    option_value_from_label,
)
from feedbackhub.logging_config import get_logger

logger = get_logger(__name__)

_ID_ALPHABET = string.digits + string.ascii_lowercase

# Draft keys that update_field() may change
_EDITABLE_KEYS = frozenset({
    "text",
    "type",
    "required",
    "placeholder",
    "description",
    "options",
    "min_rating",
    "max_rating",
})


class FormBuilderError(Exception):
    """Raised when a builder operation or the final build fails."""
    pass


def generate_field_id() -> str:
    """Random field id: ``field_`` followed by 9 base-36 characters."""
    return "field_" + "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))


def _check_type(field_type: Any) -> str:
    value = field_type.value if isinstance(field_type, FieldType) else str(field_type).strip().lower()
    try:
        FieldType(value)
    except ValueError:
        raise FormBuilderError(f"Unknown field type: {field_type}")
    return value


class FormBuilder:
    """Editable form draft.

    Usage:
        builder = FormBuilder.blank()
        builder.title = "Customer Satisfaction"
        first = builder.fields[0]["id"]
        builder.update_field(first, text="Your name")
        builder.add_field(text="Rate us", type="rating", required=True)
        form = builder.build(created_by=user_id)
    """

    def __init__(
        self,
        title: str = "",
        description: Optional[str] = None,
        is_anonymous: bool = False,
    ):
        self.title = title
        self.description = description
        self.is_anonymous = is_anonymous
        self._fields: list[dict] = []

    @classmethod
    def blank(cls) -> "FormBuilder":
        """New draft holding one empty text field."""
        builder = cls()
        builder.add_field()
        return builder

    @classmethod
    def from_template(cls, template: FormTemplate) -> "FormBuilder":
        """New draft copying a template's settings and fields.

        Field ids are kept from the template.
        """
        builder = cls(
            title=template.title,
            description=template.description,
            is_anonymous=template.is_anonymous,
        )
        for field in template.fields:
            draft = field.model_dump(exclude_none=True)
            builder._fields.append(draft)
        return builder

    @property
    def fields(self) -> list[dict]:
        """Copy of the draft fields, in order."""
        return copy.deepcopy(self._fields)

    def _index_of(self, field_id: str) -> int:
        for index, draft in enumerate(self._fields):
            if draft["id"] == field_id:
                return index
        raise FormBuilderError(f"Field '{field_id}' not found")

    def add_field(
        self,
        text: str = "",
        type: Any = FieldType.TEXT,
        required: bool = False,
        placeholder: Optional[str] = None,
        description: Optional[str] = None,
        options: Optional[list[dict]] = None,
        min_rating: Optional[int] = None,
        max_rating: Optional[int] = None,
        field_id: Optional[str] = None,
    ) -> str:
        """Append a field to the draft.

        Returns:
            Id of the new field

        Raises:
            FormBuilderError: If the type is unknown or the id is taken
        """
        field_id = field_id or generate_field_id()
        if any(draft["id"] == field_id for draft in self._fields):
            raise FormBuilderError(f"Field id '{field_id}' already exists")

        draft = {
            "id": field_id,
            "text": text,
            "type": _check_type(type),
            "required": required,
            "options": [dict(option) for option in options or []],
        }
        for key, value in (
            ("placeholder", placeholder),
            ("description", description),
            ("min_rating", min_rating),
            ("max_rating", max_rating),
        ):
            if value is not None:
                draft[key] = value

        self._fields.append(draft)
        return field_id

    def update_field(self, field_id: str, **changes: Any) -> None:
        """Change attributes of a draft field.

        Raises:
            FormBuilderError: If the field is missing, a key is not editable
                or the new type is unknown
        """
        unknown = set(changes) - _EDITABLE_KEYS
        if unknown:
            raise FormBuilderError(f"Cannot edit field attributes: {sorted(unknown)}")

        draft = self._fields[self._index_of(field_id)]
        if "type" in changes:
            changes["type"] = _check_type(changes["type"])
        if "options" in changes:
            changes["options"] = [dict(option) for option in changes["options"] or []]
        draft.update(changes)

    def remove_field(self, field_id: str) -> None:
        del self._fields[self._index_of(field_id)]

    def move_field(self, from_index: int, to_index: int) -> None:
        """Move the field at from_index so it ends up at to_index."""
        count = len(self._fields)
        if not (0 <= from_index < count and 0 <= to_index < count):
            raise FormBuilderError(f"Field index out of range (0..{count - 1})")
        draft = self._fields.pop(from_index)
        self._fields.insert(to_index, draft)

    def add_option(self, field_id: str, label: str = "", value: str = "") -> None:
        draft = self._fields[self._index_of(field_id)]
        draft.setdefault("options", []).append({"label": label, "value": value})

    def remove_option(self, field_id: str, option_index: int) -> None:
        draft = self._fields[self._index_of(field_id)]
        options = draft.get("options", [])
        if not 0 <= option_index < len(options):
            raise FormBuilderError(f"Option index {option_index} out of range")
        del options[option_index]

    def add_suggested_question(self, question: SuggestedQuestion) -> str:
        """Append an AI-suggested question as an optional field.

        Options without a value get one derived from their label.
        """
        options = [
            {
                "label": option.label,
                "value": option.value or option_value_from_label(option.label),
            }
            for option in question.options
        ]
        field_id = self.add_field(
            text=question.label,
            type=question.type,
            required=False,
            placeholder="",
            description="",
            options=options,
        )
        logger.debug(f"Added suggested question as {field_id}")
        return field_id

    def build(self, created_by: str, form_id: Optional[str] = None) -> FormSchema:
        """Validate the draft and produce a FormSchema.

        Options are dropped from fields whose type does not use them.

        Args:
            created_by: Owner user id
            form_id: Form id to use (a new one is generated by default)

        Raises:
            FormBuilderError: If the draft is not a valid form
        """
        now = datetime.now(timezone.utc)
        try:
            fields = []
            for draft in self._fields:
                field = FieldSchema.model_validate(draft)
                if field.field_type not in (FieldType.SELECT, FieldType.RADIO, FieldType.CHECKBOX):
                    field = field.model_copy(update={"options": None})
                fields.append(field)
            form = FormSchema(
                id=form_id or uuid.uuid4().hex,
                title=self.title,
                description=self.description or None,
                fields=fields,
                is_anonymous=self.is_anonymous,
                created_by=created_by,
                created_at=now,
                updated_at=now,
            )
        except ValidationError as e:
            logger.info(f"Form draft rejected: {e.error_count()} error(s)")
            raise FormBuilderError(f"Invalid form: {e}") from e

        return form
