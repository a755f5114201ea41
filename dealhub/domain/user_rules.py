from __future__ import annotations

import re
from dataclasses import dataclass
from enum import IntEnum

from dealhub.domain.errors import Errors

EMAIL_REGEXP = re.compile(r"\A[\w+\-.]+@[a-z\d\-]+(\.[a-z\d\-]+)*\.[a-z]+\Z", re.IGNORECASE)

PASSWORD_MIN_LENGTH = 6
PASSWORD_MAX_LENGTH = 20


class Role(IntEnum):
    CUSTOMER = 0
    ADMIN = 1


@dataclass
class UserDraft:
    name: str | None
    email: str | None
    password: str | None = None
    password_confirmation: str | None = None


def normalize_email(email: str | None) -> str | None:
    if email is None:
        return None
    return email.strip().lower()


def check_password(password: str | None, confirmation: str | None, errors: Errors) -> None:
    if not password:
        return
    if len(password) < PASSWORD_MIN_LENGTH:
        errors.add("password", f"is too short (minimum is {PASSWORD_MIN_LENGTH} characters)")
    elif len(password) > PASSWORD_MAX_LENGTH:
        errors.add("password", f"is too long (maximum is {PASSWORD_MAX_LENGTH} characters)")
    if confirmation is not None and confirmation != password:
        errors.add("password_confirmation", "doesn't match Password")


def validate_user(
    draft: UserDraft,
    *,
    email_taken: bool = False,
    require_password: bool = True,
) -> Errors:
    errors = Errors()

    if not (draft.name or "").strip():
        errors.add("name", "can't be blank")

    email = (draft.email or "").strip()
    if not email:
        errors.add("email", "can't be blank")
    else:
        if email_taken:
            errors.add("email", "has already been taken")
        if not EMAIL_REGEXP.match(email):
            errors.add("email", "is not a valid email")

    if require_password and not draft.password:
        errors.add("password", "can't be blank")
    check_password(draft.password, draft.password_confirmation, errors)

    return errors
