"""
Resolves the calling user from the session cookie.

Login and session creation belong to the web front end; this module only
reads the sessions it created.
"""

from typing import Annotated, Optional

from fastapi import Depends, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from elkarbackup.models.database import User, UserSession, get_db
from elkarbackup.utils.datetime_utils import now_utc

SESSION_COOKIE = "auth_token"


async def get_current_user_optional(
    request: Request, db: AsyncSession = Depends(get_db)
) -> Optional[User]:
    auth_token = request.cookies.get(SESSION_COOKIE)
    if not auth_token:
        return None

    result = await db.execute(
        select(UserSession)
        .options(selectinload(UserSession.user))
        .where(
            UserSession.session_token == auth_token,
            UserSession.expires_at > now_utc(),
        )
    )
    session = result.scalar_one_or_none()
    if session is None or not session.user.is_active:
        return None
    return session.user


CurrentUserDep = Annotated[Optional[User], Depends(get_current_user_optional)]
