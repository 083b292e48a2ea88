from fastapi import APIRouter, Depends, status, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from firebase_admin import auth
import logging

from app.models.user import UserResponse, UserSyncRequest
from app.services.firebase_auth import find_traveler, get_current_user, oauth2_scheme
from app.database.connection import get_db
from app.database.models import User, PlanningState

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/sync", response_model=UserResponse)
async def sync_user(
    sync_data: UserSyncRequest,
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db)
):
    """
    Links a Firebase account to a DreamTrip profile, creating the profile and an
    empty planning state on first sign-in. Signing in again only refreshes the name.
    """
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    try:
        uid = auth.verify_id_token(token)['uid']
    except Exception as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=f"Invalid Firebase token: {e}")

    traveler = await find_traveler(db, uid)
    try:
        if traveler is None:
            account = auth.get_user(uid)
            traveler = User(
                firebase_uid=account.uid,
                email=account.email,
                full_name=sync_data.fullName or account.display_name,
                planning_state=PlanningState(items=[], selected_day=1),
            )
            db.add(traveler)
            logger.info(f"Created traveler profile for {account.email}")
        elif sync_data.fullName and sync_data.fullName != traveler.full_name:
            traveler.full_name = sync_data.fullName
        await db.commit()
        await db.refresh(traveler)
    except Exception as e:
        await db.rollback()
        logger.error(f"Database error on user sync: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to create user profile in DB.")
    return UserResponse.model_validate(traveler)


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_user)):
    return UserResponse.model_validate(current_user)
