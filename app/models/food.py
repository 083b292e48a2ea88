from pydantic import BaseModel, field_validator
from typing import List, Literal, Optional

DishType = Literal["local", "restaurant", "street-food"]


class FoodRecommendation(BaseModel):
    id: str
    name: str
    description: str
    image: str
    location: str
    priceRange: str
    cookingTime: str
    mood: List[str]
    ingredients: List[str]
    type: DishType


class FoodMood(BaseModel):
    emoji: str
    mood: str
    label: str


class FoodMatchRequest(BaseModel):
    moods: List[str] = []
    query: Optional[str] = None

    @field_validator('query')
    def blank_query_is_none(cls, v):
        if v is not None and not v.strip():
            return None
        return v


class FoodMatchResponse(BaseModel):
    matches: List[FoodRecommendation]
    exactMatch: bool
    message: str
