from pydantic import BaseModel
from typing import Any, Dict, List, Optional

from app.models.itinerary import ItineraryItem, TripData


class ChatRequest(BaseModel):
    message: str
    itinerary: Optional[List[ItineraryItem]] = None
    tripData: Optional[TripData] = None
    selectedDay: Optional[int] = None
    userLocation: Optional[str] = None


class ContextData(BaseModel):
    weatherIncluded: bool
    searchResultsCount: int
    activitiesCount: int
    hasUserPreferences: bool


class ChatResponse(BaseModel):
    response: str
    success: bool
    isEmergency: Optional[bool] = None
    contextData: Optional[ContextData] = None


class WeatherData(BaseModel):
    temperature: int
    condition: str
    humidity: int
    windSpeed: int
    description: str
    recommendations: List[str] = []


class SearchResult(BaseModel):
    title: str = ""
    url: str = ""
    content: str = ""
    score: float = 0


class InteractionContext(BaseModel):
    selected_day: Optional[int] = None
    itinerary_count: int = 0
    weather_condition: Optional[str] = None
    search_results_count: int = 0


class AssistantInteraction(BaseModel):
    id: str
    timestamp: str
    user_message: str
    ai_response: str
    context: InteractionContext


class SuggestionsResponse(BaseModel):
    suggestions: List[str]


class UserPreferenceSnapshot(BaseModel):
    ai_interactions: List[Dict[str, Any]] = []
    preferences_analysis: Optional[str] = None
