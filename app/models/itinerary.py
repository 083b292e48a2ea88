from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import List, Literal, Optional, Tuple

Category = Literal["activity", "meal", "transport", "accommodation"]

DEFAULT_COORDINATES: Tuple[float, float] = (-20.348404, 57.552152)


class ItineraryItem(BaseModel):
    id: str
    day: int = Field(ge=1)
    title: str
    description: str = ""
    time: str = "10:00"
    location: str = ""
    coordinates: Tuple[float, float] = DEFAULT_COORDINATES
    isLocked: bool = False
    category: Category = "activity"


# Trip preferences entered on the onboarding form
class TripData(BaseModel):
    startDate: Optional[str] = None
    endDate: Optional[str] = None
    budget: Optional[float] = None
    travelStyle: Optional[str] = None
    groupSize: Optional[str] = None
    preferences: Optional[str] = None

    model_config = ConfigDict(extra="allow")

    @field_validator('budget', mode='before')
    def unreadable_budget_is_none(cls, v):
        # the form field is free text; anything that is not a number counts as unset
        if isinstance(v, str):
            try:
                return float(v.replace(",", "").strip())
            except ValueError:
                return None
        return v


class ItemCreate(BaseModel):
    day: Optional[int] = Field(default=None, ge=1)
    title: Optional[str] = None
    description: Optional[str] = None
    time: Optional[str] = None
    location: Optional[str] = None
    coordinates: Optional[Tuple[float, float]] = None
    category: Optional[Category] = None


class ItemUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    time: Optional[str] = None
    location: Optional[str] = None
    coordinates: Optional[Tuple[float, float]] = None
    category: Optional[Category] = None


class ReorderRequest(BaseModel):
    day: int = Field(ge=1)
    sourceIndex: int = Field(ge=0)
    # None when the drag was dropped outside a valid target
    destIndex: Optional[int] = Field(default=None, ge=0)


class GeneratePlanRequest(BaseModel):
    days: int = 3


class SelectDayRequest(BaseModel):
    day: int = Field(ge=1)


class PlanningStateResponse(BaseModel):
    tripData: Optional[TripData] = None
    itinerary: List[ItineraryItem] = []
    selectedDay: int
    days: List[int] = []
