from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Principal:
    """Authenticated identity extracted from a validated bearer token.

    Carried through the request via FastAPI's dependency system.
    user_id is the opaque subject every activity row is keyed by.
    """

    user_id: str
