"""Unit tests for the form renderer.

Tests widget selection, value binding, the value store and form reloads.
"""

import pytest

from feedbackhub.schemas.form import FieldSchema, FormSchema
from feedbackhub.services.form_renderer import (
    CheckboxGroupWidget,
    ChoiceWidget,
    FormSession,
    NpsWidget,
    PassthroughWidget,
    RatingWidget,
    TextWidget,
    UnknownFieldError,
    ValueStore,
    WidgetInputError,
    create_widget,
    initial_value,
)

OPTIONS = [{"label": "Email", "value": "email"}, {"label": "Phone", "value": "phone"}]


def make_form(*fields, form_id="form_1"):
    return FormSchema(id=form_id, title="Test", fields=list(fields), created_by="user_1")


class TestInitialValues:
    """Tests for per-type initial store values."""

    @pytest.mark.parametrize("field_type,expected", [
        ("text", ""),
        ("textarea", ""),
        ("email", ""),
        ("number", ""),
        ("date", ""),
        ("checkbox", []),
        ("rating", 0),
        ("nps", 0),
        ("hologram", ""),
    ])
    def test_initial_value(self, field_type, expected):
        options = OPTIONS if field_type == "checkbox" else None
        field = FieldSchema(id="f", text="F", type=field_type, options=options)
        assert initial_value(field) == expected

    def test_store_has_one_entry_per_field(self, satisfaction_form):
        session = FormSession(satisfaction_form)
        assert session.store.snapshot() == {"q1": 0, "q2": ""}


class TestCreateWidget:
    """Tests for widget dispatch by field type."""

    @pytest.mark.parametrize("field_type,widget_class", [
        ("text", TextWidget),
        ("textarea", TextWidget),
        ("email", TextWidget),
        ("number", TextWidget),
        ("date", TextWidget),
        ("select", ChoiceWidget),
        ("radio", ChoiceWidget),
        ("checkbox", CheckboxGroupWidget),
        ("rating", RatingWidget),
        ("nps", NpsWidget),
        ("hologram", PassthroughWidget),
    ])
    def test_widget_per_type(self, field_type, widget_class):
        options = OPTIONS if field_type in ("select", "radio", "checkbox") else None
        field = FieldSchema(id="f", text="F", type=field_type, options=options)
        store = ValueStore()
        store.initialize([field])
        assert isinstance(create_widget(field, store), widget_class)

    def test_widgets_follow_field_order(self, satisfaction_form):
        session = FormSession(satisfaction_form)
        assert [w.field_id for w in session.widgets] == ["q1", "q2"]


class TestTextWidget:

    def test_set_stores_string(self):
        session = FormSession(make_form(FieldSchema(id="n", text="Age", type="number")))
        session.set_value("n", 42)
        assert session.store.get("n") == "42"

    def test_textarea_kind(self, satisfaction_form):
        assert FormSession(satisfaction_form).widget("q2").kind == "textarea"

    def test_rejects_list(self):
        session = FormSession(make_form(FieldSchema(id="t", text="Name", type="text")))
        with pytest.raises(WidgetInputError):
            session.widget("t").set(["x"])


class TestChoiceWidget:

    def test_select_known_option(self):
        session = FormSession(make_form(
            FieldSchema(id="c", text="Contact", type="select", options=OPTIONS)
        ))
        session.widget("c").select("phone")
        assert session.store.get("c") == "phone"

    def test_unknown_option_refused(self):
        session = FormSession(make_form(
            FieldSchema(id="c", text="Contact", type="radio", options=OPTIONS)
        ))
        with pytest.raises(WidgetInputError) as exc_info:
            session.widget("c").set("fax")
        assert exc_info.value.field_id == "c"
        assert session.store.get("c") == ""

    def test_describe_marks_selected(self):
        session = FormSession(make_form(
            FieldSchema(id="c", text="Contact", type="radio", options=OPTIONS)
        ))
        session.set_value("c", "email")
        options = session.widget("c").describe()["options"]
        assert [o["selected"] for o in options] == [True, False]


class TestCheckboxGroupWidget:

    def test_toggle_round_trip(self, features_form):
        session = FormSession(features_form)
        widget = session.widget("q5")
        widget.toggle("dashboard")
        assert session.store.get("q5") == ["dashboard"]
        widget.toggle("dashboard")
        assert session.store.get("q5") == []

    def test_toggle_preserves_order(self, features_form):
        session = FormSession(features_form)
        widget = session.widget("q5")
        for value in ("reporting", "dashboard", "integration"):
            widget.toggle(value)
        widget.toggle("dashboard")
        assert session.store.get("q5") == ["reporting", "integration"]

    def test_toggle_unknown_option(self, features_form):
        with pytest.raises(WidgetInputError):
            FormSession(features_form).widget("q5").toggle("billing")

    def test_set_wraps_single_value(self, features_form):
        session = FormSession(features_form)
        session.set_value("q5", "reporting")
        assert session.store.get("q5") == ["reporting"]

    def test_is_checked(self, features_form):
        session = FormSession(features_form)
        widget = session.widget("q5")
        widget.toggle("integration")
        assert widget.is_checked("integration")
        assert not widget.is_checked("dashboard")


class TestScaleWidgets:

    def test_rating_click_sets_position(self, satisfaction_form):
        session = FormSession(satisfaction_form)
        session.widget("q1").click(4)
        assert session.store.get("q1") == 4

    def test_rating_fill_state(self, satisfaction_form):
        session = FormSession(satisfaction_form)
        widget = session.widget("q1")
        widget.click(3)
        assert [widget.is_filled(p) for p in widget.positions] == [True, True, True, False, False]

    def test_rating_positions_follow_max_rating(self):
        field = FieldSchema(id="r", text="Stars", type="rating", max_rating=10)
        session = FormSession(make_form(field))
        assert list(session.widget("r").positions) == list(range(1, 11))

    def test_rating_click_out_of_range(self, satisfaction_form):
        with pytest.raises(WidgetInputError):
            FormSession(satisfaction_form).widget("q1").click(6)

    def test_rating_set_from_string(self, satisfaction_form):
        session = FormSession(satisfaction_form)
        session.set_value("q1", "2")
        assert session.store.get("q1") == 2

    def test_nps_positions(self):
        session = FormSession(make_form(FieldSchema(id="n", text="NPS", type="nps")))
        widget = session.widget("n")
        assert list(widget.positions) == list(range(0, 11))
        widget.click(0)
        assert session.store.get("n") == 0


class TestFormSession:
    """Tests for session-level binding and reloading."""

    def test_set_value_returns_field_result(self, satisfaction_form):
        session = FormSession(satisfaction_form)
        assert not session.set_value("q1", 0).is_valid
        assert session.set_value("q1", 4).is_valid

    def test_set_value_unknown_field(self, satisfaction_form):
        with pytest.raises(UnknownFieldError):
            FormSession(satisfaction_form).set_value("q9", "x")

    def test_field_error(self, satisfaction_form):
        session = FormSession(satisfaction_form)
        assert session.field_error("q1") == "Overall satisfaction is required."
        assert session.field_error("q2") is None

    def test_fill_ignores_unknown_keys(self, satisfaction_form):
        session = FormSession(satisfaction_form)
        errors = session.fill({"q1": 5, "stale_field": "old"})
        assert errors == {}
        assert session.store.snapshot() == {"q1": 5, "q2": ""}

    def test_fill_collects_binding_errors(self, satisfaction_form):
        session = FormSession(satisfaction_form)
        errors = session.fill({"q1": "lots"})
        assert list(errors) == ["q1"]

    def test_loading_other_form_resets_store(self, satisfaction_form, features_form):
        session = FormSession(satisfaction_form)
        session.set_value("q1", 4)
        session.load(features_form)
        assert session.store.snapshot() == {"q5": []}

    def test_reload_same_form_keeps_entered_values(self, satisfaction_form):
        session = FormSession(satisfaction_form)
        session.set_value("q2", "Nice")
        session.load(satisfaction_form)
        assert session.store.get("q2") == "Nice"

    def test_edited_fields_recompile_and_initialize_new_ids(self, satisfaction_form):
        session = FormSession(satisfaction_form)
        session.set_value("q2", "Nice")
        edited = satisfaction_form.model_copy(update={
            "fields": [
                satisfaction_form.fields[1],
                FieldSchema(id="q3", text="Email", type="email", required=True),
            ]
        })
        session.load(edited)
        assert session.store.snapshot() == {"q2": "Nice", "q3": ""}
        assert session.validator.rule_for("q1") is None
        assert session.validate() == {"q3": "Email must be a valid email."}

    def test_type_change_on_reload_resets_value(self):
        session = FormSession(make_form(
            FieldSchema(id="q1", text="Score", type="text"),
            FieldSchema(id="q2", text="Picks", type="text"),
            FieldSchema(id="q3", text="Notes", type="text"),
        ))
        session.set_value("q1", "five")
        session.set_value("q2", "dashboard")
        session.set_value("q3", "keep me")

        session.load(make_form(
            FieldSchema(id="q1", text="Score", type="rating", max_rating=5),
            FieldSchema(id="q2", text="Picks", type="checkbox", options=OPTIONS),
            FieldSchema(id="q3", text="Notes", type="text", required=True),
        ))

        assert session.store.snapshot() == {"q1": 0, "q2": [], "q3": "keep me"}
        description = session.describe()
        assert [p["filled"] for p in description[0]["positions"]] == [False] * 5
        assert session.validate() == {}

    def test_describe_uses_camel_keys(self, satisfaction_form):
        description = FormSession(satisfaction_form).describe()[0]
        assert description["fieldId"] == "q1"
        assert description["widget"] == "rating"
        assert description["value"] == 0
        assert len(description["positions"]) == 5
