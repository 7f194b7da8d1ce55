from __future__ import annotations

import logging
from typing import Annotated

import jwt
from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer

from watchtime.core.context import set_user_id
from watchtime.core.errors import Unauthenticated
from watchtime.db.engine import async_session_factory
from watchtime.models.principal import Principal
from watchtime.repos.activity_repo import ActivityRepo, InMemoryActivityRepo
from watchtime.repos.catalog_repo import CatalogRepo, InMemoryCatalogRepo
from watchtime.repos.pg_activity_repo import PgActivityRepo
from watchtime.repos.pg_catalog_repo import PgCatalogRepo
from watchtime.services import token_service

logger = logging.getLogger(__name__)

# auto_error=False so a missing header goes through the same
# Unauthenticated path (and error body) as a bad token.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token", auto_error=False)

# ---------------------------------------------------------------------------
# Repositories (module-level singletons)
# ---------------------------------------------------------------------------

if async_session_factory is not None:
    activity_repo: ActivityRepo = PgActivityRepo(async_session_factory)
    catalog_repo: CatalogRepo = PgCatalogRepo(async_session_factory)
else:
    activity_repo = InMemoryActivityRepo()
    catalog_repo = InMemoryCatalogRepo()


def get_activity_repo() -> ActivityRepo:
    return activity_repo


def get_catalog_repo() -> CatalogRepo:
    return catalog_repo


# ---------------------------------------------------------------------------
# Identity
# ---------------------------------------------------------------------------


async def require_user(
    raw_token: Annotated[str | None, Depends(oauth2_scheme)],
) -> Principal:
    """Extract and validate the bearer token. Returns a Principal.

    Used as a FastAPI dependency on every activity endpoint.
    """
    if not raw_token:
        raise Unauthenticated("No token provided")

    try:
        claims = token_service.decode_access_token(raw_token)
    except jwt.ExpiredSignatureError:
        logger.warning("Expired token rejected")
        raise Unauthenticated("Token expired") from None
    except jwt.InvalidTokenError as e:
        logger.warning("Invalid token rejected: %s", e)
        raise Unauthenticated("Invalid or expired token") from None

    user_id = token_service.subject_of(claims)
    if user_id is None:
        logger.warning("Token without subject rejected")
        raise Unauthenticated("Invalid or expired token")

    set_user_id(user_id)
    logger.debug("Token validated for user=%s", user_id)
    return Principal(user_id=user_id)
