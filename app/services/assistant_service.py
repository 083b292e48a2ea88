import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.assistant import (
    AssistantInteraction, ChatRequest, ChatResponse, ContextData, InteractionContext,
    SearchResult, UserPreferenceSnapshot, WeatherData,
)
from app.models.itinerary import TripData
from app.services.activity_service import fetch_activities
from app.services.firebase_auth import resolve_user
from app.services.generation_service import generate_assistant_reply
from app.services.planning_store import get_planning_snapshot
from app.services.preference_service import analyze_user_preferences, load_user_preferences, record_interaction
from app.services.search_service import search_travel_info
from app.services.weather_service import DEFAULT_LOCATION, get_weather_data

logger = logging.getLogger(__name__)

DESTINATION = "Mauritius"
PROMPT_ACTIVITY_LIMIT = 10
PROMPT_SEARCH_RESULT_LIMIT = 3
SEARCH_EXCERPT_LENGTH = 200

EMERGENCY_KEYWORDS = [
    "emergency", "help", "lost", "sick", "injured", "accident", "police",
    "hospital", "ambulance", "fire", "danger", "urgent", "emergency contact",
]

EMERGENCY_RESPONSE = """🚨 EMERGENCY ASSISTANCE FOR MAURITIUS:

**Emergency Numbers:**
• Police: 999 or 112
• Medical Emergency: 114
• Fire Brigade: 995
• Tourist Police: +230 210 3894

**Hospitals:**
• Dr Jeetoo Hospital: +230 212 3201
• Wellkin Hospital: +230 401 9500
• Clinique du Nord: +230 247 2532

**Embassies & Consulates:**
• British High Commission: +230 202 9400
• US Embassy: +230 202 4400
• French Embassy: +230 202 0100

**Tourist Assistance:**
• Mauritius Tourism Authority: +230 210 1545
• Tourist Police Hotline: +230 210 3894

Stay calm, call the appropriate emergency number, and provide your exact location if possible."""

FALLBACK_MODEL_MESSAGE = ("I'm having trouble connecting to my AI brain. "
                          "Let me try to help you with what I know about Mauritius!")
FALLBACK_API_MESSAGE = ("Some of my data sources are temporarily unavailable, "
                        "but I can still provide general travel advice for Mauritius.")
FALLBACK_GENERIC_MESSAGE = ("I encountered an unexpected issue, "
                            "but I'm still here to help with your Mauritius travel plans!")

BASE_SUGGESTIONS = [
    "What's the weather like today?",
    "Suggest activities for today",
    "Find nearby restaurants",
]

INTEREST_SUGGESTIONS = [
    (("hiking", "hike"), "Show me hiking trails"),
    (("beach",), "Best beaches for today"),
    (("culture", "cultural"), "Cultural sites to visit"),
    (("food", "cuisine"), "Local food recommendations"),
]


def check_for_emergency(message: str) -> Optional[str]:
    lower_message = (message or "").lower()
    if any(keyword in lower_message for keyword in EMERGENCY_KEYWORDS):
        return EMERGENCY_RESPONSE
    return None


def fallback_message_for(error: Exception) -> str:
    error_text = str(error)
    if "Gemini" in error_text:
        return FALLBACK_MODEL_MESSAGE
    if "API" in error_text:
        return FALLBACK_API_MESSAGE
    return FALLBACK_GENERIC_MESSAGE


def generate_quick_suggestions(trip_data: Optional[TripData]) -> List[str]:
    if trip_data is None:
        return list(BASE_SUGGESTIONS)

    preferences = (trip_data.preferences or "").lower()
    personalised = [suggestion for keywords, suggestion in INTEREST_SUGGESTIONS
                    if any(keyword in preferences for keyword in keywords)]
    if trip_data.travelStyle == "adventure":
        personalised.append("Adventure activities nearby")

    if personalised:
        return personalised[:2] + [BASE_SUGGESTIONS[0]]
    return list(BASE_SUGGESTIONS)


@dataclass
class AssistantContext:
    activities: List[Dict[str, Any]] = field(default_factory=list)
    weather: Optional[WeatherData] = None
    search_results: List[SearchResult] = field(default_factory=list)
    user_preferences: Optional[UserPreferenceSnapshot] = None


def _settled(result, default, source: str):
    if isinstance(result, BaseException):
        logger.error(f"Context source '{source}' failed: {result}")
        return default
    return default if result is None else result


async def gather_context(request: ChatRequest, token: Optional[str]) -> AssistantContext:
    """
    Queries the four context sources concurrently. Each one fails on its own:
    a failed or unconfigured source leaves its slot empty and the rest still count.
    """
    activities, weather, search_results, preferences = await asyncio.gather(
        fetch_activities(),
        get_weather_data(request.userLocation or DEFAULT_LOCATION),
        search_travel_info(request.message, DESTINATION),
        load_user_preferences(token),
        return_exceptions=True,
    )
    return AssistantContext(
        activities=_settled(activities, [], "activities"),
        weather=_settled(weather, None, "weather"),
        search_results=_settled(search_results, [], "search"),
        user_preferences=_settled(preferences, None, "user_preferences"),
    )


def _format_activity(activity: Dict[str, Any]) -> str:
    cost = activity.get("cost_estimate_usd")
    price = f"${cost:g}" if cost else "Price varies"
    return f"- {activity.get('title')} ({activity.get('category')}, {activity.get('location')}) - {price}"


def build_system_prompt(request: ChatRequest, context: AssistantContext) -> str:
    trip = request.tripData
    if trip:
        budget = f"{trip.budget:g}" if trip.budget is not None else "Not specified"
        trip_summary = f"Budget: {budget}, Style: {trip.travelStyle}, Group: {trip.groupSize} people"
    else:
        trip_summary = "Not available"

    itinerary = request.itinerary or []
    if itinerary:
        itinerary_overview = "\n".join(
            f"Day {item.day}: {item.title} at {item.time} ({item.location})" for item in itinerary
        )
    else:
        itinerary_overview = "No itinerary provided"

    activities_overview = "\n".join(
        _format_activity(activity) for activity in context.activities[:PROMPT_ACTIVITY_LIMIT]
    )

    contextual_info = ""
    weather = context.weather
    if weather:
        contextual_info += f"""
**CURRENT WEATHER IN MAURITIUS:**
- Temperature: {weather.temperature}°C
- Condition: {weather.condition} ({weather.description})
- Humidity: {weather.humidity}%
- Wind Speed: {weather.windSpeed} km/h
- Weather Recommendations: {', '.join(weather.recommendations)}"""

    if context.search_results:
        contextual_info += "\n**RECENT TRAVEL INFORMATION:**"
        for index, result in enumerate(context.search_results[:PROMPT_SEARCH_RESULT_LIMIT], start=1):
            contextual_info += f"""
{index}. {result.title}
   {result.content[:SEARCH_EXCERPT_LENGTH]}...
   Source: {result.url}"""

    preferences = context.user_preferences
    if preferences and preferences.ai_interactions:
        contextual_info += f"""
**USER PREFERENCE ANALYSIS:**
{analyze_user_preferences(preferences.ai_interactions)}"""

    return f"""You are an advanced AI travel assistant specializing in Mauritius with real-time capabilities. You have access to current weather data, recent travel information from the web, and user preference analysis.

**CURRENT CONTEXT:**
- User's Trip: {trip_summary}
- Current Day Focus: Day {request.selectedDay or 'Not specified'}
- Itinerary Items: {len(itinerary)} planned activities
- User Location: {'Available' if request.userLocation else 'Not available'}

**CURRENT ITINERARY OVERVIEW:**
{itinerary_overview}

**MAURITIUS ACTIVITIES DATABASE:**
{activities_overview}

{contextual_info}

**ENHANCED INSTRUCTIONS:**
- Provide specific, actionable travel advice with real-time context
- Use weather data to make activity recommendations
- Reference recent web information when relevant
- Consider user's historical preferences and patterns
- Include practical details: costs, timing, locations, weather suitability
- For restaurant/activity suggestions, provide specific names and locations
- Help optimize routes based on weather and user preferences
- Format responses with clear sections using bullet points and headings
- Always cite sources when using web search information
- Be concise but comprehensive in your recommendations"""


def build_user_prompt(message: str, selected_day: Optional[int]) -> str:
    focus = f"planning Day {selected_day}" if selected_day else "reviewing my itinerary"
    return f"""{message}

Context: I'm currently {focus} of my Mauritius trip."""


async def _fill_from_planning_state(request: ChatRequest, db: AsyncSession, user) -> ChatRequest:
    """Uses the user's stored planning state for whatever the request left out."""
    if request.itinerary is not None and request.tripData is not None and request.selectedDay is not None:
        return request
    try:
        snapshot = await get_planning_snapshot(db, user)
    except Exception as e:
        logger.error(f"Error reading planning state: {e}")
        return request
    if snapshot is None:
        return request
    return request.model_copy(update={
        "itinerary": request.itinerary if request.itinerary is not None else snapshot["itinerary"],
        "tripData": request.tripData if request.tripData is not None else snapshot["tripData"],
        "selectedDay": request.selectedDay if request.selectedDay is not None else snapshot["selectedDay"],
    })


async def _save_interaction(db: AsyncSession, user, request: ChatRequest, ai_response: str,
                            context: AssistantContext) -> None:
    interaction = AssistantInteraction(
        id=uuid.uuid4().hex,
        timestamp=datetime.now(timezone.utc).isoformat(),
        user_message=request.message,
        ai_response=ai_response,
        context=InteractionContext(
            selected_day=request.selectedDay,
            itinerary_count=len(request.itinerary or []),
            weather_condition=context.weather.condition if context.weather else None,
            search_results_count=len(context.search_results),
        ),
    )
    try:
        await record_interaction(db, user, interaction)
        logger.info("Conversation and preferences saved")
    except Exception as e:
        await db.rollback()
        logger.error(f"Error saving conversation: {e}", exc_info=True)


async def handle_chat(request: ChatRequest, token: Optional[str], db: AsyncSession) -> ChatResponse:
    logger.info(
        f"Travel assistant request: itinerary={len(request.itinerary or [])} items, "
        f"tripData={'present' if request.tripData else 'missing'}, selectedDay={request.selectedDay}, "
        f"userLocation={'present' if request.userLocation else 'missing'}"
    )

    emergency_response = check_for_emergency(request.message)
    if emergency_response:
        logger.info("Emergency keywords detected, returning emergency contacts")
        return ChatResponse(response=emergency_response, success=True, isEmergency=True)

    context = await gather_context(request, token)

    user = await resolve_user(token, db) if token else None
    if user is not None:
        request = await _fill_from_planning_state(request, db, user)

    system_prompt = build_system_prompt(request, context)
    user_prompt = build_user_prompt(request.message, request.selectedDay)
    ai_response = await generate_assistant_reply(system_prompt, user_prompt)

    if user is not None:
        await _save_interaction(db, user, request, ai_response, context)

    return ChatResponse(
        response=ai_response,
        success=True,
        contextData=ContextData(
            weatherIncluded=context.weather is not None,
            searchResultsCount=len(context.search_results),
            activitiesCount=len(context.activities),
            hasUserPreferences=context.user_preferences is not None,
        ),
    )
