from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class Credentials:
    numfile: str
    password: str


@dataclass
class ListingRow:
    """One flat row of a house listing on add_flat.php."""

    id: str
    number: str
    floor: str
    rooms: int | None
    url: str
    available: bool = True


@dataclass
class SessionBlob:
    """Serialised cookie jar of an authenticated browser."""

    cookies: list[dict] = field(default_factory=list)
    saved_at: datetime | None = None
