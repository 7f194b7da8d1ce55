"""Per-request context held in ContextVars.

Every request task gets its own copy, so concurrent requests on the
event loop thread never see each other's values.  The logging filter in
core/logging.py copies them onto every LogRecord.
"""

from __future__ import annotations

from contextvars import ContextVar

request_id_var: ContextVar[str] = ContextVar("request_id", default="-")
user_id_var: ContextVar[str | None] = ContextVar("user_id", default=None)


def set_user_id(user_id: str | None) -> None:
    user_id_var.set(user_id)
