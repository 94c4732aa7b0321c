import datetime
import logging
import re
from dataclasses import replace
from typing import List, Optional

from schemas import EMPTY_INPUT, UserInput

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("full_name", "birth_date")
BIRTH_DATE_PATTERN = re.compile(r"\d{4}-\d{2}-\d{2}")

# Wire (camelCase) names accepted alongside the attribute names.
FIELD_ALIASES = {
    "fullName": "full_name",
    "birthDate": "birth_date",
    "intention": "intention",
    "full_name": "full_name",
    "birth_date": "birth_date",
}


class ValidationFailure(ValueError):
    """Raised when the draft cannot be submitted yet."""

    def __init__(self, missing_fields: List[str], invalid_fields: Optional[List[str]] = None):
        self.missing_fields = list(missing_fields)
        self.invalid_fields = list(invalid_fields or [])
        problems = []
        if self.missing_fields:
            problems.append(f"missing {', '.join(self.missing_fields)}")
        if self.invalid_fields:
            problems.append(f"invalid {', '.join(self.invalid_fields)}")
        super().__init__("Cannot submit intake form: " + "; ".join(problems))


class UnknownField(ValueError):
    pass


def resolve_field(field: str) -> str:
    try:
        return FIELD_ALIASES[field]
    except KeyError:
        raise UnknownField(f"Unknown intake field: {field!r}") from None


def is_valid_birth_date(birth_date: str) -> bool:
    """Accepts only a YYYY-MM-DD calendar date."""
    if not BIRTH_DATE_PATTERN.fullmatch(birth_date):
        return False
    try:
        datetime.date.fromisoformat(birth_date)
    except ValueError:
        return False
    return True


class IntakeForm:
    """
    Holds the draft the user is typing.

    Each update replaces exactly one field; ``try_submit`` returns a finalized
    copy and never clears the draft.
    """

    def __init__(self, draft: Optional[UserInput] = None):
        self.draft = draft if draft is not None else EMPTY_INPUT

    def update(self, field: str, value: str) -> UserInput:
        if not isinstance(value, str):
            raise TypeError(f"Intake field {field!r} expects a string, got {type(value).__name__}")
        self.draft = replace(self.draft, **{resolve_field(field): value})
        return self.draft

    def try_submit(self) -> UserInput:
        finalized = UserInput(
            full_name=self.draft.full_name.strip(),
            birth_date=self.draft.birth_date.strip(),
            intention=self.draft.intention,
        )
        missing = [name for name in REQUIRED_FIELDS if not getattr(finalized, name)]
        invalid = []
        if finalized.birth_date and not is_valid_birth_date(finalized.birth_date):
            invalid.append("birth_date")
        if missing or invalid:
            logger.info(f"Intake submit blocked (missing={missing}, invalid={invalid})")
            raise ValidationFailure(missing, invalid)
        return finalized
