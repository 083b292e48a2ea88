# file: scripts/seed_activities.py

import asyncio
import logging
import os
import sys

from sqlalchemy import select, func

# Add the project root to the Python path to allow absolute imports from the 'app' package
# This is necessary because we are running this file as a standalone script.
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
from app.database.connection import get_db_session, init_db
from app.database.models import Activity

logger = logging.getLogger(__name__)

STARTER_ACTIVITIES = [
    {"title": "Le Morne Brabant Hike", "category": "adventure", "location": "Le Morne",
     "description": "Guided sunrise hike up the UNESCO-listed mountain", "cost_estimate_usd": 45},
    {"title": "Underwater Sea Walk", "category": "water", "location": "Blue Bay Marine Park",
     "description": "Explore marine life without diving skills", "cost_estimate_usd": 120},
    {"title": "Chamarel Seven Coloured Earth", "category": "nature", "location": "Chamarel",
     "description": "Geological dunes and the Chamarel Waterfall", "cost_estimate_usd": 10},
    {"title": "Île aux Cerfs Catamaran Day", "category": "water", "location": "Trou d'Eau Douce",
     "description": "Catamaran cruise with snorkeling and a beach barbecue", "cost_estimate_usd": 90},
    {"title": "Port Louis Central Market Tour", "category": "culture", "location": "Port Louis",
     "description": "Street food tasting including dholl puri and alouda", "cost_estimate_usd": 25},
    {"title": "Aapravasi Ghat", "category": "culture", "location": "Port Louis",
     "description": "World Heritage immigration depot and museum", "cost_estimate_usd": None},
    {"title": "Grand Bassin Temple", "category": "culture", "location": "Savanne",
     "description": "Sacred crater lake and Hindu pilgrimage site", "cost_estimate_usd": None},
    {"title": "Black River Gorges National Park", "category": "nature", "location": "Black River",
     "description": "Rainforest trails and viewpoints", "cost_estimate_usd": None},
    {"title": "Kite Surfing Lesson", "category": "water", "location": "Le Morne Lagoon",
     "description": "Beginner lesson in the One Eye lagoon", "cost_estimate_usd": 110},
    {"title": "Pamplemousses Botanical Garden", "category": "nature", "location": "Pamplemousses",
     "description": "Giant water lilies and centuries-old palms", "cost_estimate_usd": 8},
    {"title": "Mahebourg Creole Lunch", "category": "food", "location": "Mahebourg",
     "description": "Fish vindaye and octopus curry by the waterfront", "cost_estimate_usd": 20},
    {"title": "Spa Afternoon", "category": "wellness", "location": "Belle Mare",
     "description": "Resort spa treatments with lagoon views", "cost_estimate_usd": 150},
]


async def seed_activities(db) -> int:
    """Inserts the starter catalogue when the activities table is empty. Returns the number of rows added."""
    existing = (await db.execute(select(func.count()).select_from(Activity))).scalar_one()
    if existing:
        logger.info(f"Activities table already has {existing} rows, skipping seed.")
        return 0
    db.add_all([Activity(**activity) for activity in STARTER_ACTIVITIES])
    await db.commit()
    logger.info(f"Seeded {len(STARTER_ACTIVITIES)} activities.")
    return len(STARTER_ACTIVITIES)


async def main():
    await init_db()
    async with get_db_session() as db:
        await seed_activities(db)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(main())
