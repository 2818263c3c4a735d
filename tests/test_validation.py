"""Tests for the field rules and the submission validator."""

import pytest
from pydantic import ValidationError

from schemas import Form, FormField
from validation import ValidationResult, check_field, is_empty, validate_submission


def make_field(**kwargs) -> FormField:
    data = {"id": "f1", "type": "text", "label": "Field"}
    data.update(kwargs)
    return FormField.model_validate(data)


class TestPresence:
    @pytest.mark.parametrize("value", [None, "", [], ()])
    def test_required_empty_value(self, value) -> None:
        field = make_field(label="Name", required=True)
        assert check_field(field, value) == "Name is required"

    @pytest.mark.parametrize("field_type", ["text", "email", "number", "textarea", "select", "radio", "checkbox", "date"])
    def test_required_applies_to_every_type(self, field_type: str) -> None:
        field = make_field(type=field_type, label="Thing", required=True)
        assert check_field(field, None) == "Thing is required"

    def test_optional_empty_skips_other_checks(self) -> None:
        field = make_field(validation={"minLength": 5})
        assert check_field(field, "") is None
        number = make_field(type="number", validation={"min": 10})
        assert check_field(number, None) is None

    def test_zero_and_false_are_present(self) -> None:
        assert not is_empty(0)
        assert not is_empty(False)
        assert is_empty("")


class TestLength:
    def test_bounds(self) -> None:
        field = make_field(label="Code", validation={"minLength": 3, "maxLength": 5})
        assert check_field(field, "ab") == "Code must be at least 3 characters"
        assert check_field(field, "abcdef") == "Code must be no more than 5 characters"
        assert check_field(field, "abc") is None

    def test_textarea_uses_length_rules(self) -> None:
        field = make_field(type="textarea", label="Bio", validation={"maxLength": 3})
        assert check_field(field, "long") == "Bio must be no more than 3 characters"

    @pytest.mark.parametrize("value", [["ab"], 12345])
    def test_length_ignored_for_non_strings(self, value) -> None:
        field = make_field(label="Code", validation={"maxLength": 3})
        assert check_field(field, value) is None

    def test_length_ignored_for_other_types(self) -> None:
        field = make_field(type="select", validation={"minLength": 10})
        assert check_field(field, "x") is None


class TestNumber:
    def test_range(self) -> None:
        field = make_field(type="number", label="Age", validation={"min": 0, "max": 10})
        assert check_field(field, "-1") == "Age must be at least 0"
        assert check_field(field, "11") == "Age must be no more than 10"
        assert check_field(field, "5") is None
        assert check_field(field, 7) is None

    def test_fractional_bound_in_message(self) -> None:
        field = make_field(type="number", label="Score", validation={"min": 2.5})
        assert check_field(field, "1") == "Score must be at least 2.5"

    @pytest.mark.parametrize("value", ["abc", "nan", "inf", True, 10 ** 400])
    def test_not_a_number(self, value) -> None:
        field = make_field(type="number", label="Age")
        assert check_field(field, value) == "Age must be a number"


class TestEmail:
    @pytest.mark.parametrize("value", ["a@b.com", "first.last@sub.example.org"])
    def test_valid(self, value: str) -> None:
        assert check_field(make_field(type="email", label="Email"), value) is None

    @pytest.mark.parametrize("value", ["not-an-email", "a@b", "a b@c.com", "a@@b.com", "@b.com"])
    def test_invalid(self, value: str) -> None:
        field = make_field(type="email", label="Email")
        assert check_field(field, value) == "Email must be a valid email address"


class TestChoiceAndDate:
    def test_option_membership_not_enforced(self) -> None:
        field = make_field(type="radio", options=["yes", "no"])
        assert check_field(field, "maybe") is None

    def test_checkbox_list(self) -> None:
        field = make_field(type="checkbox", label="Tags", required=True, options=["a", "b"])
        assert check_field(field, ["a"]) is None
        assert check_field(field, []) == "Tags is required"


class TestValidateSubmission:
    def _form(self) -> Form:
        return Form.model_validate(
            {
                "title": "Signup",
                "fields": [
                    {"id": "textField", "type": "text", "label": "Name", "required": True, "validation": {"minLength": 2}},
                    {"id": "emailField", "type": "email", "label": "Email"},
                ],
            }
        )

    def test_empty_payload(self) -> None:
        result = validate_submission(self._form(), {})
        assert result.is_valid is False
        assert result.errors == {"textField": "Name is required"}

    def test_bad_email(self) -> None:
        result = validate_submission(self._form(), {"textField": "hi", "emailField": "bad"})
        assert result.is_valid is False
        assert result.errors == {"emailField": "Email must be a valid email address"}

    def test_valid(self) -> None:
        result = validate_submission(self._form(), {"textField": "hi"})
        assert result.is_valid is True
        assert result.errors == {}
        assert result.to_response() == {"isValid": True, "errors": {}}

    def test_every_field_checked(self) -> None:
        result = validate_submission(self._form(), {"textField": "x", "emailField": "bad"})
        assert set(result.errors) == {"textField", "emailField"}

    def test_extra_keys_ignored(self) -> None:
        result = validate_submission(self._form(), {"textField": "hi", "unknown": "?"})
        assert result.is_valid

    def test_none_payload(self) -> None:
        assert validate_submission(self._form(), None).errors == {"textField": "Name is required"}

    def test_idempotent(self) -> None:
        form = self._form()
        payload = {"textField": "x", "emailField": "bad"}
        assert validate_submission(form, payload) == validate_submission(form, payload)

    def test_field_order_does_not_matter(self) -> None:
        form = self._form()
        reversed_form = form.model_copy(update={"fields": list(reversed(form.fields))})
        payload = {"textField": "x", "emailField": "bad"}
        assert validate_submission(form, payload).errors == validate_submission(reversed_form, payload).errors

    def test_status_not_checked(self) -> None:
        form = self._form()
        assert form.status == "draft"
        assert validate_submission(form, {"textField": "ok"}).is_valid

    def test_result_default(self) -> None:
        assert ValidationResult().is_valid


class TestFieldDefinitionContract:
    def test_missing_label(self) -> None:
        with pytest.raises(ValidationError):
            FormField.model_validate({"id": "x", "type": "text"})

    def test_unknown_type(self) -> None:
        with pytest.raises(ValidationError):
            FormField.model_validate({"id": "x", "type": "file", "label": "Upload"})

    def test_duplicate_field_ids(self) -> None:
        with pytest.raises(ValidationError):
            Form.model_validate(
                {
                    "title": "Dup",
                    "fields": [
                        {"id": "a", "type": "text", "label": "A"},
                        {"id": "a", "type": "email", "label": "B"},
                    ],
                }
            )
