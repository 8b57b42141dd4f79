# chat_server/domain/identity.py
from dataclasses import dataclass


@dataclass(frozen=True)
class Identity:
    """The authenticated user attached to one connection."""

    user_id: int
    username: str
    display_name: str | None = None
