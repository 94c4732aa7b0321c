from __future__ import annotations

import pytest

from intake import IntakeForm, UnknownField, ValidationFailure
from schemas import UserInput


def _form(full_name: str = "", birth_date: str = "", intention: str = "") -> IntakeForm:
    return IntakeForm(UserInput(full_name=full_name, birth_date=birth_date, intention=intention))


def test_new_form_starts_with_empty_draft() -> None:
    assert IntakeForm().draft == UserInput(full_name="", birth_date="", intention="")


def test_missing_full_name_fails() -> None:
    with pytest.raises(ValidationFailure) as excinfo:
        _form(birth_date="2020-01-01").try_submit()
    assert excinfo.value.missing_fields == ["full_name"]


def test_missing_birth_date_fails() -> None:
    with pytest.raises(ValidationFailure) as excinfo:
        _form(full_name="A").try_submit()
    assert excinfo.value.missing_fields == ["birth_date"]


def test_whitespace_only_name_counts_as_missing() -> None:
    with pytest.raises(ValidationFailure):
        _form(full_name="   ", birth_date="2020-01-01").try_submit()


@pytest.mark.parametrize("intention", ["", "Find my calling"])
def test_submit_succeeds_regardless_of_intention(intention: str) -> None:
    finalized = _form(full_name="A", birth_date="2020-01-01", intention=intention).try_submit()
    assert finalized == UserInput(full_name="A", birth_date="2020-01-01", intention=intention)


@pytest.mark.parametrize("birth_date", ["01/05/1990", "1990-13-01", "19900501", "1990-02-30", "1990-W18-2", "1990-W01-1", "1990-5-1"])
def test_malformed_birth_date_is_rejected(birth_date: str) -> None:
    with pytest.raises(ValidationFailure) as excinfo:
        _form(full_name="A", birth_date=birth_date).try_submit()
    assert excinfo.value.invalid_fields == ["birth_date"]
    assert excinfo.value.missing_fields == []


def test_submit_does_not_clear_draft() -> None:
    form = _form(full_name=" Nguyen Van A ", birth_date="1990-05-01")
    finalized = form.try_submit()
    assert finalized.full_name == "Nguyen Van A"
    assert form.draft.full_name == " Nguyen Van A "


def test_update_replaces_exactly_one_field() -> None:
    form = _form(full_name="A", birth_date="2020-01-01", intention="peace")
    form.update("birthDate", "1999-09-09")
    assert form.draft == UserInput(full_name="A", birth_date="1999-09-09", intention="peace")
    form.update("full_name", "B")
    assert form.draft == UserInput(full_name="B", birth_date="1999-09-09", intention="peace")


def test_update_rejects_unknown_field_and_non_strings() -> None:
    form = IntakeForm()
    with pytest.raises(UnknownField):
        form.update("nickname", "x")
    with pytest.raises(TypeError):
        form.update("fullName", 42)
    assert form.draft == IntakeForm().draft


def test_intention_is_kept_as_typed() -> None:
    finalized = _form(full_name=" A ", birth_date="2020-01-01", intention="  two spaces  ").try_submit()
    assert finalized.full_name == "A"
    assert finalized.intention == "  two spaces  "
