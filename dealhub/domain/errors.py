from __future__ import annotations

BASE = "base"


class Errors:
    """Validation messages grouped by field, with ``base`` for record-level ones."""

    def __init__(self) -> None:
        self._messages: dict[str, list[str]] = {}

    def add(self, field: str, message: str) -> None:
        self._messages.setdefault(field, []).append(message)

    def add_base(self, message: str) -> None:
        self.add(BASE, message)

    def merge(self, other: "Errors") -> None:
        for field, messages in other.as_dict().items():
            for message in messages:
                self.add(field, message)

    def __getitem__(self, field: str) -> list[str]:
        return list(self._messages.get(field, []))

    def __bool__(self) -> bool:
        return bool(self._messages)

    def __len__(self) -> int:
        return sum(len(v) for v in self._messages.values())

    def as_dict(self) -> dict[str, list[str]]:
        return {field: list(messages) for field, messages in self._messages.items()}

    def full_messages(self) -> list[str]:
        out: list[str] = []
        for field, messages in self._messages.items():
            for message in messages:
                if field == BASE:
                    out.append(message)
                else:
                    out.append(f"{field.replace('_', ' ').capitalize()} {message}")
        return out

    def __repr__(self) -> str:
        return f"Errors({self._messages!r})"


class DomainValidationError(Exception):
    def __init__(self, errors: Errors, message: str = "Validation failed"):
        self.errors = errors
        super().__init__(message)


class DealValidationError(DomainValidationError):
    pass


class UserValidationError(DomainValidationError):
    pass


class CartError(DomainValidationError):
    pass


class TokenConflictError(Exception):
    pass


class InvalidTransitionError(Exception):
    pass
