from dealhub.domain.errors import Errors
from dealhub.domain.user_rules import UserDraft, check_password, normalize_email, validate_user


def test_valid_user():
    draft = UserDraft(name="Ann", email="ann@example.com", password="secret1")
    assert not validate_user(draft)


def test_blank_fields():
    errors = validate_user(UserDraft(name=" ", email=None, password=None))
    assert errors["name"] == ["can't be blank"]
    assert errors["email"] == ["can't be blank"]
    assert errors["password"] == ["can't be blank"]


def test_invalid_and_taken_email():
    errors = validate_user(
        UserDraft(name="Ann", email="not-an-email", password="secret1"), email_taken=True
    )
    assert errors["email"] == ["has already been taken", "is not a valid email"]


def test_password_length():
    errors = Errors()
    check_password("abc", None, errors)
    assert errors["password"] == ["is too short (minimum is 6 characters)"]

    errors = Errors()
    check_password("x" * 21, None, errors)
    assert errors["password"] == ["is too long (maximum is 20 characters)"]


def test_password_confirmation():
    errors = Errors()
    check_password("secret1", "secret2", errors)
    assert errors["password_confirmation"] == ["doesn't match Password"]


def test_password_optional_when_not_required():
    draft = UserDraft(name="Ann", email="ann@example.com")
    assert not validate_user(draft, require_password=False)


def test_normalize_email():
    assert normalize_email("  Ann@Example.COM ") == "ann@example.com"
    assert normalize_email(None) is None


def test_full_messages():
    errors = Errors()
    errors.add("password_confirmation", "doesn't match Password")
    errors.add_base("Password reset has expired")
    assert errors.full_messages() == [
        "Password confirmation doesn't match Password",
        "Password reset has expired",
    ]
