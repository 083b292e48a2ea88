import firebase_admin
from firebase_admin import credentials, auth
from firebase_admin.auth import ExpiredIdTokenError
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import Optional
import logging
import os

from app.database.models import User
from app.database.connection import get_db

logger = logging.getLogger(__name__)

FIREBASE_CREDENTIALS = os.getenv("FIREBASE_CREDENTIALS", "serviceAccountKey.json")

# Singleton pattern: Check if the app is already initialized
if not firebase_admin._apps:
    if os.path.exists(FIREBASE_CREDENTIALS):
        try:
            cred = credentials.Certificate(FIREBASE_CREDENTIALS)
            firebase_admin.initialize_app(cred)
            logger.info("Firebase Admin SDK initialized successfully.")
        except Exception as e:
            logger.error(f"Error initializing Firebase Admin SDK: {e}")
    else:
        logger.warning(f"Firebase credentials not found at {FIREBASE_CREDENTIALS}; token verification will fail.")

# Scheme to extract token. auto_error=False makes it optional for the assistant.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/sync", auto_error=False)


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    return authorization.replace("Bearer ", "").strip() or None


async def find_traveler(db: AsyncSession, firebase_uid: str) -> Optional[User]:
    result = await db.execute(select(User).where(User.firebase_uid == firebase_uid))
    return result.scalars().first()


async def resolve_user(token: Optional[str], db: AsyncSession) -> Optional[User]:
    """
    Returns the DB user behind a Firebase ID token, or None when the token is
    missing, invalid, or belongs to nobody synced yet. Does not raise exceptions.
    """
    if not token:
        return None
    try:
        return await find_traveler(db, auth.verify_id_token(token)['uid'])
    except Exception as e:
        logger.warning(f"Could not resolve user from token: {e}")
        return None


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
        token: str = Depends(oauth2_scheme),
        db: AsyncSession = Depends(get_db)
) -> User:
    """Planner dependency: the synced traveler behind the bearer token, or an HTTP error."""
    if not token:
        raise _unauthorized("Could not validate credentials")
    try:
        firebase_uid = auth.verify_id_token(token)['uid']
    except ExpiredIdTokenError:
        raise _unauthorized("Token has expired")
    except Exception:
        raise _unauthorized("Could not validate credentials")

    traveler = await find_traveler(db, firebase_uid)
    if traveler is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User profile not found in application database. Please sync your account."
        )
    return traveler
