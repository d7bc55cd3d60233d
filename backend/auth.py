# auth.py: Bearer-token authentication and user directory for the Kanban API
# Features:
# - HS256 JWT verification (tokens are issued by the external identity provider)
# - Token minting helper for trusted callers and tests
# - Case-insensitive user lookup by email
# - Weak-reference resolution with an "Unknown" placeholder for stale ids

import os
import uuid
import secrets
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any, List, Iterable

from jose import jwt, JWTError, ExpiredSignatureError
from fastapi import HTTPException, Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from pydantic import BaseModel
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db_session
from kanban_errors import NotFound
from models import User

logger = logging.getLogger("kanban.auth")

# ============================================================
# CONFIGURATION
# ============================================================

SECRET_KEY = os.getenv("JWT_SECRET_KEY", "")
if not SECRET_KEY or SECRET_KEY == "change-this-to-a-secure-random-key-in-production":
    SECRET_KEY = secrets.token_urlsafe(64)
    logger.warning(
        "JWT_SECRET_KEY not set or insecure. Generated ephemeral key. "
        "Set JWT_SECRET_KEY in production!"
    )

ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "30"))

# auto_error=False so a missing header is a 401 rather than FastAPI's 403
security = HTTPBearer(auto_error=False)

UNKNOWN_USER = {"name": "Unknown", "email": "unknown@email.com"}


class CurrentUser(BaseModel):
    id: str
    email: str
    name: str


# ============================================================
# AUTH SERVICE
# ============================================================

class AuthService:
    """Token handling for the identity collaborator's access tokens"""

    @staticmethod
    def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
        to_encode = data.copy()
        now = datetime.now(timezone.utc)
        to_encode.update({
            "exp": now + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)),
            "iat": now,
            "type": "access",
            "jti": str(uuid.uuid4()),
        })
        return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)

    @staticmethod
    def verify_token(token: str) -> Dict[str, Any]:
        try:
            return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        except ExpiredSignatureError:
            raise HTTPException(status_code=401, detail="Token expired")
        except JWTError:
            raise HTTPException(status_code=401, detail="Invalid token")


# ============================================================
# USER DIRECTORY
# ============================================================

async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    """Case-insensitive lookup; an exact-case match wins over older case variants"""
    email = email.strip()
    stmt = (
        select(User)
        .where(func.lower(User.email) == email.lower())
        .order_by((User.email == email).desc(), User.created_at)
    )
    result = await db.execute(stmt)
    return result.scalars().first()


async def resolve_users(db: AsyncSession, user_ids: Iterable[str]) -> Dict[str, Dict[str, str]]:
    """Map user ids to {id, name, email}; ids with no directory entry get the placeholder"""
    ids = {uid for uid in user_ids if uid}
    if not ids:
        return {}
    result = await db.execute(select(User).where(User.id.in_(ids)))
    found = {u.id: {"id": u.id, "name": u.name, "email": u.email} for u in result.scalars().all()}
    return {uid: found.get(uid, {"id": uid, **UNKNOWN_USER}) for uid in ids}


async def ensure_users_exist(db: AsyncSession, user_ids: List[str]) -> None:
    ids = set(user_ids)
    if not ids:
        return
    result = await db.execute(select(User.id).where(User.id.in_(ids)))
    if len(set(result.scalars().all())) != len(ids):
        raise NotFound("User not found")


# ============================================================
# FASTAPI DEPENDENCIES
# ============================================================

async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db_session),
) -> CurrentUser:
    if credentials is None:
        raise HTTPException(status_code=401, detail="Not authenticated")

    payload = AuthService.verify_token(credentials.credentials)

    if payload.get("type") != "access":
        raise HTTPException(status_code=401, detail="Invalid token type")

    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(status_code=401, detail="Invalid token")

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user:
        raise HTTPException(status_code=401, detail="User not found")

    return CurrentUser(id=user.id, email=user.email, name=user.name or "")
