import logging
from typing import Dict, List

from sqlalchemy import select

from app.database.connection import get_db_session
from app.database.models import Activity

logger = logging.getLogger(__name__)

ACTIVITY_FETCH_LIMIT = 50


def activity_to_dict(activity: Activity) -> Dict:
    return {
        "id": activity.id,
        "title": activity.title,
        "category": activity.category,
        "location": activity.location,
        "description": activity.description,
        "cost_estimate_usd": activity.cost_estimate_usd,
    }


async def fetch_activities(limit: int = ACTIVITY_FETCH_LIMIT) -> List[Dict]:
    # Own session: this runs concurrently with the other context lookups.
    try:
        async with get_db_session() as db:
            result = await db.execute(select(Activity).limit(limit))
            return [activity_to_dict(a) for a in result.scalars().all()]
    except Exception as e:
        logger.error(f"Error fetching activities: {e}")
        return []
