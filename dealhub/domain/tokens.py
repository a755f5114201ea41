from __future__ import annotations

import secrets
from typing import Awaitable, Callable

from dealhub.domain.errors import TokenConflictError


def new_token(nbytes: int = 16) -> str:
    """Random URL-safe token (22 chars for the default 16 bytes)."""
    return secrets.token_urlsafe(nbytes)


async def generate_unique_token(
    exists: Callable[[str], Awaitable[bool]],
    *,
    max_attempts: int,
    generator: Callable[[], str] = new_token,
) -> str:
    """Draw tokens until ``exists`` reports a miss.

    Gives up with ``TokenConflictError`` after ``max_attempts`` collisions.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")

    for _ in range(max_attempts):
        token = generator()
        if not await exists(token):
            return token

    raise TokenConflictError(f"No free token after {max_attempts} attempts")
