"""Form rendering: widgets bound to a value store.

Each field of a form gets one widget, in field order, chosen by the field's
type. Widgets read and write a single entry of a shared ValueStore keyed by
field id. A FormSession ties a form, its compiled validator, the store and
the widgets together for the lifetime of one respondent's form entry.
"""

import copy
from typing import Any, Iterator, Optional

from feedbackhub.schemas.form import (
    DEFAULT_MAX_RATING,
    NPS_MAX,
    NPS_MIN,
    FieldSchema,
    FieldType,
    FormSchema,
)
from feedbackhub.services.guards import InFlightGuard
from feedbackhub.services.validation import (
    FormValidator,
    ValidationResult,
    coerce_number,
    compile_validator,
)
from feedbackhub.logging_config import get_logger

logger = get_logger(__name__)


class UnknownFieldError(KeyError):
    """Raised when a field id is not part of the loaded form."""
    pass


class WidgetInputError(ValueError):
    """Raised when a widget receives input it cannot bind.

    Attributes:
        field_id: Field the input was meant for
    """

    def __init__(self, field_id: str, message: str):
        super().__init__(message)
        self.field_id = field_id


def initial_value(field: FieldSchema) -> Any:
    """Initial store entry for a field.

    checkbox fields start as an empty list, rating and nps fields at 0,
    everything else as the empty string.
    """
    field_type = field.field_type
    if field_type == FieldType.CHECKBOX:
        return []
    if field_type in (FieldType.RATING, FieldType.NPS):
        return 0
    return ""


class ValueStore:
    """In-memory mapping from field id to the field's current input value."""

    def __init__(self):
        self._values: dict[str, Any] = {}
        self._initial: dict[str, Any] = {}
        self._types: dict[str, str] = {}

    def initialize(self, fields: list[FieldSchema], keep_existing: bool = False) -> None:
        """Set up one entry per field.

        Args:
            fields: Fields of the form being entered
            keep_existing: Keep values of field ids already present with the
                same type instead of resetting them; entries for removed
                fields are dropped
        """
        previous = self._values if keep_existing else {}
        previous_types = self._types if keep_existing else {}
        self._initial = {field.id: initial_value(field) for field in fields}
        self._types = {field.id: field.type for field in fields}
        self._values = {}
        for field_id, value in self._initial.items():
            # A value entered under another type does not fit the new widget
            if field_id in previous and previous_types.get(field_id) == self._types[field_id]:
                self._values[field_id] = previous[field_id]
            else:
                self._values[field_id] = copy.deepcopy(value)

    def reset(self) -> None:
        """Restore every entry to its initial value."""
        self._values = copy.deepcopy(self._initial)

    def get(self, field_id: str) -> Any:
        return self._values[field_id]

    def set(self, field_id: str, value: Any) -> None:
        if field_id not in self._values:
            raise UnknownFieldError(field_id)
        self._values[field_id] = value

    def snapshot(self) -> dict[str, Any]:
        """Copy of the current values, in field order."""
        return copy.deepcopy(self._values)

    def __contains__(self, field_id: str) -> bool:
        return field_id in self._values

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)


class Widget:
    """An input bound to one field's store entry."""

    kind = "input"

    def __init__(self, field: FieldSchema, store: ValueStore):
        self.field = field
        self.store = store

    @property
    def field_id(self) -> str:
        return self.field.id

    @property
    def value(self) -> Any:
        return self.store.get(self.field.id)

    def set(self, raw: Any) -> None:
        """Bind raw input to the store entry."""
        self.store.set(self.field.id, raw)

    def describe(self) -> dict:
        """Serializable description of the widget and its current state."""
        return {
            "fieldId": self.field.id,
            "widget": self.kind,
            "type": self.field.type,
            "label": self.field.label,
            "required": self.field.required,
            "placeholder": self.field.placeholder,
            "description": self.field.description,
            "value": copy.deepcopy(self.value),
        }


class TextWidget(Widget):
    """text, email, number, textarea and date inputs; the value is a string."""

    kind = "text"

    def __init__(self, field: FieldSchema, store: ValueStore):
        super().__init__(field, store)
        self.input_type = field.type
        if field.field_type == FieldType.TEXTAREA:
            self.kind = "textarea"

    def set(self, raw: Any) -> None:
        if isinstance(raw, (list, dict)):
            raise WidgetInputError(self.field.id, f"{self.field.label} must be text.")
        self.store.set(self.field.id, "" if raw is None else str(raw))

    def describe(self) -> dict:
        description = super().describe()
        description["inputType"] = self.input_type
        return description


class ChoiceWidget(Widget):
    """select and radio inputs; the value is one option value or ''."""

    def __init__(self, field: FieldSchema, store: ValueStore):
        super().__init__(field, store)
        self.kind = field.type

    def set(self, raw: Any) -> None:
        value = "" if raw is None else raw
        if value != "" and value not in self.field.option_values():
            raise WidgetInputError(
                self.field.id, f"'{value}' is not an option of {self.field.label}."
            )
        self.store.set(self.field.id, value)

    def select(self, option_value: str) -> None:
        self.set(option_value)

    def describe(self) -> dict:
        description = super().describe()
        description["options"] = [
            {
                "label": option.label,
                "value": option.value,
                "selected": option.value == self.value,
            }
            for option in self.field.options or []
        ]
        return description


class CheckboxGroupWidget(Widget):
    """checkbox option group; the value is a list of selected option values."""

    kind = "checkbox"

    def set(self, raw: Any) -> None:
        values = [] if raw is None else raw
        if isinstance(values, str):
            values = [values]
        if not isinstance(values, list):
            raise WidgetInputError(self.field.id, f"{self.field.label} must be a list of options.")
        unknown = [v for v in values if v not in self.field.option_values()]
        if unknown:
            raise WidgetInputError(
                self.field.id, f"{unknown} are not options of {self.field.label}."
            )
        self.store.set(self.field.id, list(values))

    def is_checked(self, option_value: str) -> bool:
        return option_value in self.value

    def toggle(self, option_value: str) -> None:
        """Add option_value if absent, remove it if present.

        The order of the other selected values is preserved.
        """
        if option_value not in self.field.option_values():
            raise WidgetInputError(
                self.field.id, f"'{option_value}' is not an option of {self.field.label}."
            )
        current = list(self.value)
        if option_value in current:
            current.remove(option_value)
        else:
            current.append(option_value)
        self.store.set(self.field.id, current)

    def describe(self) -> dict:
        description = super().describe()
        description["options"] = [
            {
                "label": option.label,
                "value": option.value,
                "checked": self.is_checked(option.value),
            }
            for option in self.field.options or []
        ]
        return description


class ScaleWidget(Widget):
    """Row of numbered positions; the value is an integer position."""

    first_position = 0
    last_position = NPS_MAX

    @property
    def positions(self) -> range:
        return range(self.first_position, self.last_position + 1)

    def click(self, position: int) -> None:
        """Set the store entry to the clicked position."""
        if position not in self.positions:
            raise WidgetInputError(
                self.field.id,
                f"{self.field.label} must be between "
                f"{self.first_position} and {self.last_position}.",
            )
        self.store.set(self.field.id, position)

    def set(self, raw: Any) -> None:
        if raw is None or raw == "":
            self.store.set(self.field.id, initial_value(self.field))
            return
        number = coerce_number(raw)
        if not isinstance(number, int):
            raise WidgetInputError(self.field.id, f"{self.field.label} must be a whole number.")
        if number == 0:
            self.store.set(self.field.id, 0)
            return
        self.click(number)


class RatingWidget(ScaleWidget):
    """Star rating over [1, maxRating]; 0 means not yet rated."""

    kind = "rating"
    first_position = 1

    def __init__(self, field: FieldSchema, store: ValueStore):
        super().__init__(field, store)
        self.last_position = field.max_rating or DEFAULT_MAX_RATING

    def is_filled(self, position: int) -> bool:
        """A position is filled when the current rating reaches it."""
        return self.value >= position

    def describe(self) -> dict:
        description = super().describe()
        description["positions"] = [
            {"position": p, "filled": self.is_filled(p)} for p in self.positions
        ]
        return description


class NpsWidget(ScaleWidget):
    """Net Promoter Score buttons 0 to 10."""

    kind = "nps"
    first_position = NPS_MIN
    last_position = NPS_MAX

    def describe(self) -> dict:
        description = super().describe()
        description["positions"] = [
            {"position": p, "selected": self.value == p} for p in self.positions
        ]
        return description


class PassthroughWidget(Widget):
    """Widget for unrecognised field types; stores input unchanged."""

    kind = "unknown"


def create_widget(field: FieldSchema, store: ValueStore) -> Widget:
    """Instantiate the widget matching the field's type."""
    field_type = field.field_type

    if field_type in (
        FieldType.TEXT,
        FieldType.EMAIL,
        FieldType.NUMBER,
        FieldType.TEXTAREA,
        FieldType.DATE,
    ):
        return TextWidget(field, store)
    elif field_type in (FieldType.SELECT, FieldType.RADIO):
        return ChoiceWidget(field, store)
    elif field_type == FieldType.CHECKBOX:
        return CheckboxGroupWidget(field, store)
    elif field_type == FieldType.RATING:
        return RatingWidget(field, store)
    elif field_type == FieldType.NPS:
        return NpsWidget(field, store)
    else:
        return PassthroughWidget(field, store)


class FormSession:
    """One respondent's live form entry.

    Holds the loaded form, the validator compiled from its fields, the value
    store and one widget per field. Loading a different form resets the
    store; reloading the same form with an edited field list recompiles the
    validator and initializes the new field ids and those whose type changed.

    Usage:
        session = FormSession(form)
        session.widget("q5").toggle("dashboard")
        session.set_value("q2", "Great service")
        errors = session.validate()
    """

    def __init__(self, form: FormSchema):
        self.form: Optional[FormSchema] = None
        self.validator: Optional[FormValidator] = None
        self.store = ValueStore()
        self.widgets: list[Widget] = []
        self.in_flight = InFlightGuard()
        self.load(form)

    def load(self, form: FormSchema) -> None:
        """Establish (or re-establish) the form being entered."""
        same_form = self.form is not None and self.form.id == form.id
        fields_changed = self.form is None or self.form.fields != form.fields

        self.form = form
        if fields_changed:
            self.validator = compile_validator(form.fields)
        if not same_form or fields_changed:
            self.store.initialize(form.fields, keep_existing=same_form)
            self.widgets = [create_widget(field, self.store) for field in form.fields]
            logger.debug(
                f"Loaded form with {len(form.fields)} fields",
                extra={"form_id": form.id},
            )

    def widget(self, field_id: str) -> Widget:
        for widget in self.widgets:
            if widget.field_id == field_id:
                return widget
        raise UnknownFieldError(field_id)

    def set_value(self, field_id: str, raw: Any) -> ValidationResult:
        """Bind input to one field and check it against that field's rule.

        Returns:
            The field's ValidationResult, for inline feedback
        """
        self.widget(field_id).set(raw)
        return self.validator.validate_field(field_id, self.store.get(field_id))

    def fill(self, values: dict[str, Any]) -> dict[str, str]:
        """Bind several inputs at once.

        Keys that are not field ids of the form are ignored.

        Returns:
            Field id to message for inputs the widgets refused to bind
        """
        binding_errors: dict[str, str] = {}
        unknown = [key for key in values if key not in self.store]
        if unknown:
            logger.warning(
                f"Ignoring answers for unknown fields: {unknown}",
                extra={"form_id": self.form.id},
            )
        for widget in self.widgets:
            if widget.field_id not in values:
                continue
            try:
                widget.set(values[widget.field_id])
            except WidgetInputError as e:
                binding_errors[e.field_id] = str(e)
        return binding_errors

    def field_error(self, field_id: str) -> Optional[str]:
        """Inline error message for one field, if its value is invalid."""
        return self.validator.validate_field(field_id, self.store.get(field_id)).error_message

    def validate(self) -> dict[str, str]:
        """Check the whole store; field id to message for failing fields."""
        return self.validator.validate(self.store.snapshot())

    def reset(self) -> None:
        self.store.reset()

    def describe(self) -> list[dict]:
        """Widget descriptions in field order."""
        return [widget.describe() for widget in self.widgets]
