"""Unit tests for form schemas.

Tests field validation, option value derivation and camelCase payloads.
"""

import pytest
from pydantic import ValidationError

from feedbackhub.schemas.form import (
    FieldOption,
    FieldSchema,
    FieldType,
    FormSchema,
    FormTemplate,
    ResponseRecord,
    option_value_from_label,
)


class TestFieldOption:

    def test_value_derived_from_label(self):
        assert FieldOption(label="Very Likely").value == "very-likely"

    def test_empty_value_derived(self):
        assert FieldOption(label="No Contact", value="").value == "no-contact"

    def test_explicit_value_kept(self):
        assert FieldOption(label="Email", value="email_me").value == "email_me"

    def test_label_required(self):
        with pytest.raises(ValidationError):
            FieldOption(label="", value="x")

    def test_option_value_collapses_whitespace(self):
        assert option_value_from_label("No  follow up\tneeded") == "no-follow-up-needed"


class TestFieldSchema:

    def test_label_alias(self):
        field = FieldSchema.model_validate({"id": "q1", "label": "Name", "type": "text"})
        assert field.text == "Name"
        assert field.label == "Name"

    def test_camel_case_keys(self):
        field = FieldSchema.model_validate(
            {"id": "q1", "text": "Stars", "type": "rating", "maxRating": 10, "minRating": 1}
        )
        assert field.max_rating == 10
        dumped = field.model_dump(by_alias=True, exclude_none=True)
        assert dumped["maxRating"] == 10

    def test_type_normalized(self):
        assert FieldSchema(id="q", text="Q", type="  Email ").type == "email"
        assert FieldSchema(id="q", text="Q", type=FieldType.NPS).type == "nps"

    def test_unknown_type_loads(self):
        field = FieldSchema(id="q", text="Q", type="signature")
        assert field.field_type is None

    def test_choice_requires_options(self):
        with pytest.raises(ValidationError, match="must have options"):
            FieldSchema(id="q", text="Q", type="select")

    def test_duplicate_option_values(self):
        with pytest.raises(ValidationError, match="duplicate option values"):
            FieldSchema(
                id="q",
                text="Q",
                type="radio",
                options=[{"label": "A", "value": "a"}, {"label": "B", "value": "a"}],
            )

    def test_min_above_max_rejected(self):
        with pytest.raises(ValidationError):
            FieldSchema(id="q", text="Q", type="number", min_rating=5, max_rating=2)

    def test_option_values(self):
        field = FieldSchema(
            id="q", text="Q", type="checkbox",
            options=[{"label": "Dashboard"}, {"label": "Reporting Tools"}],
        )
        assert field.option_values() == ["dashboard", "reporting-tools"]


class TestFormSchema:

    def test_duplicate_field_ids(self):
        with pytest.raises(ValidationError, match="Duplicate field IDs"):
            FormSchema(
                id="f",
                title="T",
                fields=[
                    FieldSchema(id="q1", text="A", type="text"),
                    FieldSchema(id="q1", text="B", type="text"),
                ],
                created_by="u",
            )

    def test_blank_title(self):
        with pytest.raises(ValidationError):
            FormSchema(
                id="f", title="   ",
                fields=[FieldSchema(id="q1", text="A", type="text")],
                created_by="u",
            )

    def test_requires_fields(self):
        with pytest.raises(ValidationError):
            FormSchema(id="f", title="T", fields=[], created_by="u")

    def test_get_field(self, satisfaction_form):
        assert satisfaction_form.get_field("q2").type == "textarea"
        assert satisfaction_form.get_field("missing") is None
        assert satisfaction_form.field_ids() == ["q1", "q2"]

    def test_json_payload_uses_camel_case(self, satisfaction_form):
        payload = satisfaction_form.model_dump(by_alias=True, mode="json")
        assert {"isAnonymous", "createdBy", "createdAt", "updatedAt"} <= set(payload)


class TestResponseRecord:

    def test_frozen(self):
        record = ResponseRecord(id="r1", form_id="f1", answers={"q1": 4})
        with pytest.raises(ValidationError):
            record.user_id = "someone"

    def test_camel_case(self):
        record = ResponseRecord.model_validate(
            {"id": "r1", "formId": "f1", "answers": {}, "userId": "u1"}
        )
        assert record.form_id == "f1"
        assert record.user_id == "u1"


class TestFormTemplate:

    def test_invalid_id(self):
        with pytest.raises(ValidationError):
            FormTemplate(
                id="bad id!", title="T",
                fields=[FieldSchema(id="q1", text="A", type="text")],
            )
