from fastapi import APIRouter, HTTPException, status
from typing import List

from app.models.food import FoodMatchRequest, FoodMatchResponse, FoodMood
from app.services.food_service import FOOD_MOODS, find_food_matches

router = APIRouter()


@router.get("/moods", response_model=List[FoodMood])
async def list_moods():
    return FOOD_MOODS


@router.post("/matches", response_model=FoodMatchResponse)
async def match_food(request: FoodMatchRequest):
    if not request.moods and not request.query:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST,
                            detail="Choose at least one mood or enter what you're craving.")
    matches, exact = find_food_matches(request.moods, request.query)
    if exact:
        message = f"Found {len(matches)} delicious matches based on your mood and preferences"
    else:
        message = "No exact matches found. Here are some popular Mauritian dishes you might enjoy!"
    return FoodMatchResponse(matches=matches, exactMatch=exact, message=message)
