"""Validator compilation for form fields.

This module turns an ordered list of field schemas into a ruleset: one
rule per field, selected by the field's type. Rules check a single value
from the value store and produce a ValidationResult; the compiled
FormValidator checks a whole store and reports every failing field.

Compilation is a pure function of the field list. Callers recompile
whenever the list changes instead of caching validators across edits.
"""

import math
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence

from pydantic import EmailStr, TypeAdapter, ValidationError

from feedbackhub.schemas.form import (
    DEFAULT_MAX_RATING,
    NPS_MAX,
    NPS_MIN,
    FieldSchema,
    FieldType,
)
from feedbackhub.logging_config import get_logger

logger = get_logger(__name__)

_email_adapter = TypeAdapter(EmailStr)


@dataclass
class ValidationResult:
    """Result of checking one field value.

    Attributes:
        is_valid: Whether the value passed the rule
        normalized_value: Coerced value (numbers for numeric rules)
        error_message: Error message if validation failed
    """
    is_valid: bool
    normalized_value: Any
    error_message: Optional[str]


def _ok(value: Any) -> ValidationResult:
    return ValidationResult(is_valid=True, normalized_value=value, error_message=None)


def _fail(message: str) -> ValidationResult:
    return ValidationResult(is_valid=False, normalized_value=None, error_message=message)


def _is_absent(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def coerce_number(value: Any) -> Optional[float]:
    """Coerce a store value to a number.

    Returns:
        int or float, or None when the value is not numeric
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = value
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None

    if isinstance(number, float):
        if math.isnan(number) or math.isinf(number):
            return None
        if number.is_integer():
            return int(number)
    return number


@dataclass(frozen=True)
class FieldRule:
    """Base rule. Subclasses implement check() for one field type."""
    field_id: str
    label: str
    required: bool

    def check(self, value: Any) -> ValidationResult:
        raise NotImplementedError


@dataclass(frozen=True)
class StringRule(FieldRule):
    """text, textarea, radio, select and date fields."""

    def check(self, value: Any) -> ValidationResult:
        if value is None:
            if self.required:
                return _fail(f"{self.label} is required.")
            return _ok(value)
        if not isinstance(value, str):
            return _fail(f"{self.label} must be text.")
        if self.required and len(value) == 0:
            return _fail(f"{self.label} is required.")
        return _ok(value)


@dataclass(frozen=True)
class EmailRule(FieldRule):
    """email fields; optional ones also accept the empty string."""

    def check(self, value: Any) -> ValidationResult:
        if not self.required and (value is None or value == ""):
            return _ok(value)
        if not isinstance(value, str):
            return _fail(f"{self.label} must be a valid email.")
        try:
            _email_adapter.validate_python(value)
        except ValidationError:
            return _fail(f"{self.label} must be a valid email.")
        return _ok(value)


@dataclass(frozen=True)
class NumberRule(FieldRule):
    """number fields, bounded below by the field's minRating."""
    minimum: float = -math.inf

    def check(self, value: Any) -> ValidationResult:
        if _is_absent(value):
            if self.required:
                return _fail(f"{self.label} is required.")
            return _ok(None)
        number = coerce_number(value)
        if number is None:
            return _fail(f"{self.label} must be a number.")
        if self.required and number < self.minimum:
            return _fail(f"{self.label} is required.")
        return _ok(number)


@dataclass(frozen=True)
class ScaleRule(FieldRule):
    """rating and nps fields.

    Required fields must reach ``floor``; 0 is the unset value for ratings,
    so their floor is 1. Values above ``ceiling`` or below 0 are rejected.
    """
    floor: int = 1
    ceiling: int = DEFAULT_MAX_RATING

    def check(self, value: Any) -> ValidationResult:
        if _is_absent(value):
            if self.required:
                return _fail(f"{self.label} is required.")
            return _ok(None)
        number = coerce_number(value)
        if number is None:
            return _fail(f"{self.label} must be a number (rating).")
        if self.required and number < self.floor:
            return _fail(f"{self.label} is required.")
        if number < 0 or number > self.ceiling:
            lowest = self.floor if self.required else 0
            return _fail(f"{self.label} must be between {lowest} and {self.ceiling}.")
        return _ok(number)


@dataclass(frozen=True)
class MultiChoiceRule(FieldRule):
    """checkbox fields holding a list of option values."""

    def check(self, value: Any) -> ValidationResult:
        if value is None:
            value = []
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            return _fail(f"{self.label} must be a list of options.")
        if self.required and len(value) < 1:
            return _fail(f"Please select at least one option for {self.label}.")
        return _ok(value)


@dataclass(frozen=True)
class UnconstrainedRule(FieldRule):
    """Fields with an unrecognised type; never rejects."""

    def check(self, value: Any) -> ValidationResult:
        return _ok(value)


def compile_rule(field: FieldSchema) -> FieldRule:
    """Derive the validation rule for one field.

    Args:
        field: Field schema

    Returns:
        Rule matching the field's type; an UnconstrainedRule for unknown types
    """
    field_type = field.field_type
    base = dict(field_id=field.id, label=field.label, required=field.required)

    if field_type in (
        FieldType.TEXT,
        FieldType.TEXTAREA,
        FieldType.RADIO,
        FieldType.SELECT,
        FieldType.DATE,
    ):
        return StringRule(**base)
    elif field_type == FieldType.EMAIL:
        return EmailRule(**base)
    elif field_type == FieldType.NUMBER:
        minimum = field.min_rating if field.min_rating is not None else -math.inf
        return NumberRule(**base, minimum=minimum)
    elif field_type == FieldType.RATING:
        return ScaleRule(**base, floor=1, ceiling=field.max_rating or DEFAULT_MAX_RATING)
    elif field_type == FieldType.NPS:
        return ScaleRule(**base, floor=NPS_MIN, ceiling=NPS_MAX)
    elif field_type == FieldType.CHECKBOX:
        return MultiChoiceRule(**base)
    else:
        logger.debug(
            f"Unknown field type '{field.type}' on field {field.id}; accepting any value"
        )
        return UnconstrainedRule(
            field_id=field.id, label=field.label, required=False
        )


@dataclass(frozen=True)
class FormValidator:
    """Compiled ruleset for an ordered list of fields.

    Two validators compiled from equal field lists compare equal.
    """
    rules: tuple[FieldRule, ...]

    def rule_for(self, field_id: str) -> Optional[FieldRule]:
        for rule in self.rules:
            if rule.field_id == field_id:
                return rule
        return None

    def validate_field(self, field_id: str, value: Any) -> ValidationResult:
        """Check one value against its field's rule.

        Raises:
            KeyError: If no rule exists for field_id
        """
        rule = self.rule_for(field_id)
        if rule is None:
            raise KeyError(field_id)
        return rule.check(value)

    def validate(self, values: Mapping[str, Any]) -> dict[str, str]:
        """Check every field of a value store.

        Args:
            values: Field id to current value; missing ids are checked as None

        Returns:
            Field id to error message for each failing field, in field order.
            Empty when every field passes.
        """
        errors: dict[str, str] = {}
        for rule in self.rules:
            result = rule.check(values.get(rule.field_id))
            if not result.is_valid:
                errors[rule.field_id] = result.error_message
        return errors


def compile_validator(fields: Sequence[FieldSchema]) -> FormValidator:
    """Compile the ruleset for a field list.

    Example:
        >>> validator = compile_validator(form.fields)
        >>> validator.validate({"q1": 0, "q2": ""})
        {'q1': 'Overall satisfaction is required.'}
    """
    return FormValidator(rules=tuple(compile_rule(field) for field in fields))
