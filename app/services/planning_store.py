import logging
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import ValidationError

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database.models import PlanningState, User
from app.models.itinerary import ItineraryItem, TripData, PlanningStateResponse
from app.services.itinerary_engine import ItineraryEngine

logger = logging.getLogger(__name__)


def _stored_items(rows) -> List[ItineraryItem]:
    items = []
    for row in rows or []:
        try:
            items.append(ItineraryItem(**row))
        except ValidationError as e:
            logger.warning(f"Skipping unreadable itinerary item {row.get('id')}: {e}")
    return items


class PlanningStore:
    """
    Per-user planning state shared by the itinerary and the assistant.

    The engine reports every mutation here; `flush()` writes the latest snapshot,
    items and selected day together, in a single commit.
    """

    def __init__(self, db: AsyncSession, state: PlanningState):
        self.db = db
        self.state = state
        self._pending: Optional[Dict] = None
        self.engine = ItineraryEngine(
            items=_stored_items(state.items),
            selected_day=state.selected_day or 1,
        )
        self.engine.add_listener(self.stage)

    @classmethod
    async def load(cls, db: AsyncSession, user: User) -> "PlanningStore":
        stmt = select(PlanningState).where(PlanningState.user_id == user.id)
        result = await db.execute(stmt)
        state = result.scalars().first()
        if state is None:
            state = PlanningState(user_id=user.id, trip_data=None, items=[], selected_day=1)
            db.add(state)
            await db.flush()
        return cls(db, state)

    @property
    def trip_data(self) -> Optional[TripData]:
        if not self.state.trip_data:
            return None
        return TripData(**self.state.trip_data)

    def stage(self, snapshot: Dict) -> None:
        self._pending = snapshot

    async def save_trip_data(self, trip_data: TripData) -> None:
        self.state.trip_data = trip_data.model_dump(mode="json")
        # the itinerary follows the trip dates every time they change
        if not self.engine.sync_days_from_trip_dates(trip_data):
            logger.info("Trip dates missing or invalid; itinerary days left unchanged")
        await self.flush()

    async def flush(self) -> None:
        if self._pending is not None:
            self.state.items = self._pending["itinerary"]
            self.state.selected_day = self._pending["selectedDay"]
            self._pending = None
        self.state.updated_at = datetime.utcnow()
        try:
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

    def to_response(self) -> PlanningStateResponse:
        return PlanningStateResponse(
            tripData=self.trip_data,
            itinerary=self.engine.items,
            selectedDay=self.engine.selected_day,
            days=self.engine.days(),
        )


async def get_planning_snapshot(db: AsyncSession, user: User) -> Optional[Dict]:
    """Read-only view of a user's stored planning state for the assistant."""
    stmt = select(PlanningState).where(PlanningState.user_id == user.id)
    result = await db.execute(stmt)
    state = result.scalars().first()
    if state is None:
        return None
    return {
        "itinerary": _stored_items(state.items),
        "tripData": TripData(**state.trip_data) if state.trip_data else None,
        "selectedDay": state.selected_day,
    }
