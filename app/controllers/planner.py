from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from app.database.connection import get_db
from app.database.models import User
from app.models.itinerary import (
    ItemCreate, ItemUpdate, ItineraryItem, ReorderRequest, GeneratePlanRequest, SelectDayRequest,
    TripData, PlanningStateResponse,
)
from app.services.firebase_auth import get_current_user
from app.services.planning_store import PlanningStore

router = APIRouter()
logger = logging.getLogger(__name__)


async def _flush(store: PlanningStore, action: str):
    try:
        await store.flush()
    except Exception as e:
        logger.error(f"Failed to {action}: {e}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                            detail=f"Failed to {action}.")


@router.get("/state", response_model=PlanningStateResponse)
async def get_planning_state(current_user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    store = await PlanningStore.load(db, current_user)
    await _flush(store, "load planning state")
    return store.to_response()


@router.put("/trip", response_model=PlanningStateResponse)
async def update_trip_data(trip_data: TripData, current_user: User = Depends(get_current_user),
                           db: AsyncSession = Depends(get_db)):
    store = await PlanningStore.load(db, current_user)
    try:
        await store.save_trip_data(trip_data)
    except Exception as e:
        logger.error(f"Failed to save trip data: {e}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to save trip data.")
    return store.to_response()


@router.put("/selected-day", response_model=PlanningStateResponse)
async def select_day(request: SelectDayRequest, current_user: User = Depends(get_current_user),
                     db: AsyncSession = Depends(get_db)):
    store = await PlanningStore.load(db, current_user)
    store.engine.select_day(request.day)
    await _flush(store, "select day")
    return store.to_response()


@router.post("/items", response_model=ItineraryItem, status_code=status.HTTP_201_CREATED)
async def add_item(item: ItemCreate, current_user: User = Depends(get_current_user),
                   db: AsyncSession = Depends(get_db)):
    store = await PlanningStore.load(db, current_user)
    fields = item.model_dump(exclude={"day"}, exclude_none=True)
    new_item = store.engine.add_item(item.day, **fields)
    await _flush(store, "add item to itinerary")
    return new_item


@router.put("/items/{item_id}", response_model=ItineraryItem)
async def edit_item(item_id: str, item_update: ItemUpdate, current_user: User = Depends(get_current_user),
                    db: AsyncSession = Depends(get_db)):
    store = await PlanningStore.load(db, current_user)
    updated = store.engine.edit_item(item_id, **item_update.model_dump(exclude_none=True))
    if updated is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Itinerary item not found.")
    await _flush(store, "update itinerary item")
    return updated


@router.post("/items/{item_id}/lock", response_model=ItineraryItem)
async def toggle_item_lock(item_id: str, current_user: User = Depends(get_current_user),
                           db: AsyncSession = Depends(get_db)):
    store = await PlanningStore.load(db, current_user)
    updated = store.engine.toggle_lock(item_id)
    if updated is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Itinerary item not found.")
    await _flush(store, "toggle item lock")
    return updated


@router.post("/reorder", response_model=PlanningStateResponse)
async def reorder_day(request: ReorderRequest, current_user: User = Depends(get_current_user),
                      db: AsyncSession = Depends(get_db)):
    store = await PlanningStore.load(db, current_user)
    if request.destIndex is not None and not store.engine.is_draggable(request.day, request.sourceIndex):
        day_items = store.engine.items_for_day(request.day)
        if 0 <= request.sourceIndex < len(day_items):
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Locked items cannot be moved.")
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No item at that position.")
    if store.engine.reorder(request.day, request.sourceIndex, request.destIndex):
        await _flush(store, "reorder itinerary")
    return store.to_response()


@router.post("/generate", response_model=PlanningStateResponse)
async def generate_plan(request: GeneratePlanRequest, current_user: User = Depends(get_current_user),
                        db: AsyncSession = Depends(get_db)):
    store = await PlanningStore.load(db, current_user)
    store.engine.generate_plan(request.days)
    await _flush(store, "generate plan")
    return store.to_response()
