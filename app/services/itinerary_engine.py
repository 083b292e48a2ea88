import uuid
import logging
from datetime import datetime
from typing import Callable, Dict, List, Optional

from app.models.itinerary import ItineraryItem, TripData, DEFAULT_COORDINATES

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400
MAX_GENERATED_DAYS = 30

EDITABLE_FIELDS = ("title", "description", "time", "location", "coordinates", "category")


def _new_id() -> str:
    return uuid.uuid4().hex


def _parse_trip_date(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    # JavaScript toISOString() ends in "Z", which fromisoformat only reads from 3.11
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(value)
    except (TypeError, ValueError):
        return None


def days_in_trip(trip_data: Optional[TripData]) -> Optional[int]:
    """
    Number of trip days between the start and end dates, both inclusive.
    Returns None when either date is missing, unparseable, or the end is before the start.
    """
    if trip_data is None:
        return None
    start = _parse_trip_date(trip_data.startDate)
    end = _parse_trip_date(trip_data.endDate)
    if start is None or end is None:
        return None
    # naive and aware datetimes cannot be compared
    if (start.tzinfo is None) != (end.tzinfo is None):
        return None
    if end < start:
        return None
    return int((end - start).total_seconds() // SECONDS_PER_DAY) + 1


class ItineraryEngine:
    """
    Ordered collection of itinerary items grouped by day.

    Items are kept in display order; a day's list is the sub-sequence of items
    carrying that day number. Every mutation hands a snapshot of the items and the
    selected day to the registered change listeners.
    """

    def __init__(self, items: Optional[List[ItineraryItem]] = None, selected_day: int = 1):
        self.items: List[ItineraryItem] = list(items or [])
        self.selected_day = selected_day
        self._listeners: List[Callable[[Dict], None]] = []

    def add_listener(self, listener: Callable[[Dict], None]) -> None:
        self._listeners.append(listener)

    def snapshot(self) -> Dict:
        return {
            "itinerary": [item.model_dump(mode="json") for item in self.items],
            "selectedDay": self.selected_day,
        }

    def _changed(self) -> None:
        snapshot = self.snapshot()
        for listener in self._listeners:
            listener(snapshot)

    # --- Derived views ---

    def days(self) -> List[int]:
        return sorted({item.day for item in self.items})

    def items_for_day(self, day: int) -> List[ItineraryItem]:
        return [item for item in self.items if item.day == day]

    def get_item(self, item_id: str) -> Optional[ItineraryItem]:
        return next((item for item in self.items if item.id == item_id), None)

    def is_draggable(self, day: int, index: int) -> bool:
        day_items = self.items_for_day(day)
        if not 0 <= index < len(day_items):
            return False
        return not day_items[index].isLocked

    # --- Mutations ---

    def select_day(self, day: int) -> None:
        self.selected_day = day
        self._changed()

    def add_item(self, day: Optional[int] = None, **fields) -> ItineraryItem:
        item = ItineraryItem(
            id=_new_id(),
            day=day or self.selected_day,
            title=fields.get("title") or "New Activity",
            description=fields.get("description") or "",
            time=fields.get("time") or "10:00",
            location=fields.get("location") or "Custom location",
            coordinates=fields.get("coordinates") or DEFAULT_COORDINATES,
            isLocked=False,
            category=fields.get("category") or "activity",
        )
        self.items.append(item)
        self._changed()
        return item

    def edit_item(self, item_id: str, **fields) -> Optional[ItineraryItem]:
        item = self.get_item(item_id)
        if item is None:
            return None
        for name in EDITABLE_FIELDS:
            if fields.get(name) is not None:
                setattr(item, name, fields[name])
        self._changed()
        return item

    def toggle_lock(self, item_id: str) -> Optional[ItineraryItem]:
        item = self.get_item(item_id)
        if item is None:
            return None
        item.isLocked = not item.isLocked
        self._changed()
        return item

    def reorder(self, day: int, source_index: int, dest_index: Optional[int]) -> bool:
        """
        Moves one item within a single day's list.

        The day's items are reordered on their own and written back into the slots
        that day already occupies in the full collection, so items of other days
        never move. A destination past the end of the day drops the item last.
        Returns False (and changes nothing) when the drag was cancelled, either
        index is negative, the source index is out of range or the dragged item
        is locked.
        """
        if dest_index is None or dest_index < 0:
            return False
        if not self.is_draggable(day, source_index):
            return False

        day_items = self.items_for_day(day)
        moved = day_items.pop(source_index)
        day_items.insert(min(dest_index, len(day_items)), moved)

        reordered = iter(day_items)
        self.items = [next(reordered) if item.day == day else item for item in self.items]
        self._changed()
        return True

    def sync_days_from_trip_dates(self, trip_data: Optional[TripData]) -> bool:
        days_count = days_in_trip(trip_data)
        if days_count is None:
            return False

        trimmed = [item for item in self.items if 1 <= item.day <= days_count]
        have_days = {item.day for item in trimmed}
        placeholders = [
            ItineraryItem(
                id=f"{_new_id()}-{day}-placeholder",
                day=day,
                title=f"Free time - Day {day}",
                description="Add activities you love or let AI suggest them",
                time="10:00",
                location="Mauritius",
                coordinates=DEFAULT_COORDINATES,
                isLocked=False,
                category="activity",
            )
            for day in range(1, days_count + 1)
            if day not in have_days
        ]
        self.items = trimmed + placeholders
        self.selected_day = 1
        logger.info(f"Synced itinerary to {days_count} trip days ({len(placeholders)} placeholders added)")
        self._changed()
        return True

    def generate_plan(self, day_count: int) -> List[ItineraryItem]:
        day_count = max(1, min(MAX_GENERATED_DAYS, int(day_count or 1)))
        generated = []
        for day in range(1, day_count + 1):
            generated.append(ItineraryItem(
                id=f"{_new_id()}-{day}-1",
                day=day,
                title=f"Morning exploration Day {day}",
                description="Auto-generated activity",
                time="09:00",
                location="Mauritius",
                coordinates=DEFAULT_COORDINATES,
                category="activity",
            ))
            generated.append(ItineraryItem(
                id=f"{_new_id()}-{day}-2",
                day=day,
                title=f"Local lunch Day {day}",
                description="Taste Mauritian cuisine",
                time="13:00",
                location="Local Restaurant",
                coordinates=DEFAULT_COORDINATES,
                category="meal",
            ))
        self.items = generated
        self.selected_day = 1
        self._changed()
        return generated
