import logging
from collections import deque
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database.connection import get_db_session
from app.database.models import User, UserPreference
from app.models.assistant import AssistantInteraction, UserPreferenceSnapshot
from app.services.firebase_auth import resolve_user

logger = logging.getLogger(__name__)

MAX_STORED_INTERACTIONS = 50
RECENT_INTERACTIONS_ANALYZED = 10
NEW_USER_ANALYSIS = "New user - providing general recommendations"

# Bucket order decides ties: the first bucket with the top score wins.
PREFERENCE_BUCKETS = [
    ("outdoor", ["beach", "swim", "snorkel"], "water activities"),
    ("cultural", ["culture", "temple", "museum"], "culture"),
    ("food", ["food", "restaurant", "eat"], "cuisine"),
    ("adventure", ["adventure", "hike", "extreme"], "adventure"),
    ("relaxation", ["spa", "relax", "resort"], "wellness"),
]


class InteractionHistory:
    """Bounded FIFO of assistant interactions; the oldest entry is evicted first."""

    def __init__(self, interactions: Optional[Iterable[Dict]] = None, capacity: int = MAX_STORED_INTERACTIONS):
        self._entries = deque(interactions or [], maxlen=capacity)

    def append(self, interaction: Dict) -> None:
        self._entries.append(interaction)

    def to_list(self) -> List[Dict]:
        return list(self._entries)

    def __len__(self):
        return len(self._entries)


def analyze_user_preferences(interactions: Optional[List[Dict]]) -> str:
    if not interactions:
        return NEW_USER_ANALYSIS

    scores = {name: 0 for name, _, _ in PREFERENCE_BUCKETS}
    interests = []
    for interaction in interactions[-RECENT_INTERACTIONS_ANALYZED:]:
        message = (interaction.get("user_message") or "").lower()
        for name, keywords, interest in PREFERENCE_BUCKETS:
            if any(keyword in message for keyword in keywords):
                scores[name] += 1
                if interest not in interests:
                    interests.append(interest)

    top_preference = max(scores, key=scores.get)
    return f"User shows preference for {top_preference} activities. Interests: {', '.join(interests)}"


async def _get_preference_row(db: AsyncSession, user_id: int) -> Optional[UserPreference]:
    stmt = select(UserPreference).where(UserPreference.user_id == user_id)
    result = await db.execute(stmt)
    return result.scalars().first()


async def load_user_preferences(token: Optional[str]) -> Optional[UserPreferenceSnapshot]:
    """Stored interaction history and analysis for the token's user, or None."""
    if not token:
        return None
    try:
        async with get_db_session() as db:
            user = await resolve_user(token, db)
            if user is None:
                return None
            row = await _get_preference_row(db, user.id)
            if row is None:
                return None
            return UserPreferenceSnapshot(
                ai_interactions=row.ai_interactions or [],
                preferences_analysis=row.preferences_analysis,
            )
    except Exception as e:
        logger.error(f"Error fetching user preferences: {e}")
        return None


async def record_interaction(db: AsyncSession, user: User, interaction: AssistantInteraction) -> UserPreference:
    """Appends one interaction to the user's history (keeping the latest 50) and refreshes the analysis."""
    row = await _get_preference_row(db, user.id)
    if row is None:
        row = UserPreference(user_id=user.id, ai_interactions=[])
        db.add(row)

    history = InteractionHistory(row.ai_interactions or [])
    history.append(interaction.model_dump(mode="json"))
    row.ai_interactions = history.to_list()
    row.preferences_analysis = analyze_user_preferences(row.ai_interactions)
    row.updated_at = datetime.utcnow()
    await db.commit()
    return row
