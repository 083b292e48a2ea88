import pytest
import pytest_asyncio
import os
from typing import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock

from httpx import AsyncClient, ASGITransport
from sqlalchemy import select
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

# --- SETUP ---
os.environ["TESTING"] = "True"

# --- App Imports ---
from main import app
from app.database.connection import Base, get_db
from app.database.models import User, UserPreference, Activity, PlanningState
from app.models.assistant import AssistantInteraction, InteractionContext, SearchResult
from app.services.assistant_service import FALLBACK_MODEL_MESSAGE, FALLBACK_GENERIC_MESSAGE
from app.services.generation_service import LanguageModelError
from firebase_admin.auth import ExpiredIdTokenError

# --- Test DB Setup ---
DATABASE_URL = "sqlite+aiosqlite:///:memory:"


# --- CORE FIXTURES ---

@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    engine = create_async_engine(DATABASE_URL, connect_args={"check_same_thread": False}, poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    TestingSessionLocal = async_sessionmaker(autocommit=False, autoflush=False, bind=engine, expire_on_commit=False)
    async with TestingSessionLocal() as session:
        yield session
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    del app.dependency_overrides[get_db]


@pytest_asyncio.fixture(scope="function")
async def test_user(db_session: AsyncSession) -> User:
    user = User(firebase_uid="test_firebase_uid_123", email="traveler@example.com", full_name="Test Traveler")
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest.fixture
def mock_firebase_auth(mocker):
    """Mocks the firebase_admin.auth module where the security dependency uses it."""
    return mocker.patch('app.services.firebase_auth.auth')


@pytest_asyncio.fixture(scope="function")
async def authenticated_client(client: AsyncClient, test_user: User, mock_firebase_auth) -> AsyncClient:
    mock_firebase_auth.verify_id_token.return_value = {'uid': test_user.firebase_uid, 'email': test_user.email}
    client.headers["Authorization"] = "Bearer existing-user-token"
    yield client


@pytest.fixture
def db_session_manager(db_session):
    """Stands in for `get_db_session()` so background lookups use the test database."""
    manager = AsyncMock()
    manager.__aenter__.return_value = db_session
    return manager


@pytest.fixture
def assistant_sources(mocker):
    """Patches the four context sources and the language model used by the assistant."""
    return {
        "activities": mocker.patch('app.services.assistant_service.fetch_activities', new_callable=AsyncMock,
                                   return_value=[{"title": "Underwater Sea Walk", "category": "water",
                                                  "location": "Blue Bay", "cost_estimate_usd": 120}]),
        "weather": mocker.patch('app.services.assistant_service.get_weather_data', new_callable=AsyncMock,
                                return_value=None),
        "search": mocker.patch('app.services.assistant_service.search_travel_info', new_callable=AsyncMock,
                               return_value=[]),
        "preferences": mocker.patch('app.services.assistant_service.load_user_preferences', new_callable=AsyncMock,
                                    return_value=None),
        "model": mocker.patch('app.services.assistant_service.generate_assistant_reply', new_callable=AsyncMock,
                              return_value="Spend the morning at Blue Bay."),
    }


###############################################################
# 1. App shell
###############################################################

@pytest.mark.asyncio
async def test_itc_001_root(client: AsyncClient):
    response = await client.get("/")
    assert response.status_code == 200
    assert response.json() == {"message": "DreamTrip API is running"}


@pytest.mark.asyncio
async def test_itc_002_assistant_preflight_allows_any_origin(client: AsyncClient):
    response = await client.options("/api/travel-assistant", headers={
        "Origin": "http://localhost:5173",
        "Access-Control-Request-Method": "POST",
        "Access-Control-Request-Headers": "authorization, x-client-info, apikey, content-type",
    })
    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "*"
    allowed = response.headers["access-control-allow-headers"].lower()
    for header in ("authorization", "x-client-info", "apikey", "content-type"):
        assert header in allowed


###############################################################
# 2. Auth
###############################################################

@pytest.mark.asyncio
async def test_itc_003_auth_sync_new_user(client: AsyncClient, mocker, db_session: AsyncSession):
    mock_auth = mocker.patch('app.controllers.auth.auth')
    mock_auth.verify_id_token.return_value = {'uid': 'new_firebase_uid'}
    mock_auth.get_user.return_value = MagicMock(uid='new_firebase_uid', email='new.user@test.com',
                                                display_name='Firebase Name')

    response = await client.post("/auth/sync", headers={"Authorization": "Bearer new-user-token"},
                                 json={"fullName": "New Traveler"})

    assert response.status_code == 200, response.text
    assert response.json()["email"] == "new.user@test.com"
    assert response.json()["full_name"] == "New Traveler"
    state = (await db_session.execute(select(PlanningState))).scalars().one()
    assert state.items == [] and state.selected_day == 1

    # a second sign-in only refreshes the name
    again = await client.post("/auth/sync", headers={"Authorization": "Bearer new-user-token"},
                              json={"fullName": "Renamed Traveler"})
    assert again.json()["id"] == response.json()["id"]
    assert again.json()["full_name"] == "Renamed Traveler"
    mock_auth.get_user.assert_called_once()


@pytest.mark.asyncio
async def test_itc_004_get_profile(authenticated_client: AsyncClient, test_user: User):
    response = await authenticated_client.get("/auth/me")
    assert response.status_code == 200
    assert response.json()["id"] == test_user.id


@pytest.mark.asyncio
async def test_itc_005_planner_requires_auth(client: AsyncClient):
    response = await client.get("/api/planner/state")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_itc_005a_expired_token(client: AsyncClient, mock_firebase_auth):
    mock_firebase_auth.verify_id_token.side_effect = ExpiredIdTokenError("Token expired", cause=None)
    response = await client.get("/api/planner/state", headers={"Authorization": "Bearer old-token"})
    assert response.status_code == 401
    assert response.json()["detail"] == "Token has expired"


@pytest.mark.asyncio
async def test_itc_005b_unsynced_user(client: AsyncClient, mock_firebase_auth):
    mock_firebase_auth.verify_id_token.return_value = {'uid': 'never_synced'}
    response = await client.get("/api/planner/state", headers={"Authorization": "Bearer fresh-token"})
    assert response.status_code == 404


###############################################################
# 3. Planner state
###############################################################

@pytest.mark.asyncio
async def test_itc_006_trip_dates_drive_itinerary_days(authenticated_client: AsyncClient):
    state = await authenticated_client.get("/api/planner/state")
    assert state.status_code == 200
    assert state.json()["itinerary"] == []

    trip = {"startDate": "2024-03-15", "endDate": "2024-03-18", "budget": "2500",
            "travelStyle": "cultural", "groupSize": "couple", "preferences": "temples and food"}
    response = await authenticated_client.put("/api/planner/trip", json=trip)

    assert response.status_code == 200, response.text
    body = response.json()
    assert body["days"] == [1, 2, 3, 4]
    assert body["selectedDay"] == 1
    assert body["tripData"]["budget"] == 2500

    # shrinking the trip trims the extra days on the next update
    response = await authenticated_client.put("/api/planner/trip",
                                              json={**trip, "endDate": "2024-03-16"})
    assert response.json()["days"] == [1, 2]


@pytest.mark.asyncio
async def test_itc_007_invalid_trip_dates_leave_itinerary_alone(authenticated_client: AsyncClient):
    await authenticated_client.post("/api/planner/generate", json={"days": 2})
    response = await authenticated_client.put("/api/planner/trip",
                                              json={"startDate": "2024-03-18", "endDate": "2024-03-15"})
    assert response.status_code == 200
    assert response.json()["days"] == [1, 2]
    assert len(response.json()["itinerary"]) == 4


@pytest.mark.asyncio
async def test_itc_008_add_edit_lock_and_reorder(authenticated_client: AsyncClient, db_session: AsyncSession):
    await authenticated_client.post("/api/planner/generate", json={"days": 1})
    added = await authenticated_client.post("/api/planner/items", json={"title": "Sunset at Le Morne", "day": 1})
    assert added.status_code == 201
    item_id = added.json()["id"]
    assert added.json()["location"] == "Custom location"

    edited = await authenticated_client.put(f"/api/planner/items/{item_id}", json={"time": "18:00"})
    assert edited.json()["time"] == "18:00"

    moved = await authenticated_client.post("/api/planner/reorder",
                                            json={"day": 1, "sourceIndex": 2, "destIndex": 0})
    assert moved.status_code == 200
    assert [item["title"] for item in moved.json()["itinerary"]] == [
        "Sunset at Le Morne", "Morning exploration Day 1", "Local lunch Day 1"]

    locked = await authenticated_client.post(f"/api/planner/items/{item_id}/lock")
    assert locked.json()["isLocked"] is True

    rejected = await authenticated_client.post("/api/planner/reorder",
                                               json={"day": 1, "sourceIndex": 0, "destIndex": 2})
    assert rejected.status_code == 409

    cancelled = await authenticated_client.post("/api/planner/reorder", json={"day": 1, "sourceIndex": 1})
    assert cancelled.status_code == 200
    assert cancelled.json()["itinerary"][0]["id"] == item_id

    stored = (await db_session.execute(select(PlanningState))).scalars().first()
    assert stored.items[0]["id"] == item_id
    assert stored.items[0]["isLocked"] is True


@pytest.mark.asyncio
async def test_itc_009_unknown_item_is_404(authenticated_client: AsyncClient):
    response = await authenticated_client.post("/api/planner/items/does-not-exist/lock")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_itc_010_select_day(authenticated_client: AsyncClient):
    await authenticated_client.post("/api/planner/generate", json={"days": 3})
    response = await authenticated_client.put("/api/planner/selected-day", json={"day": 3})
    assert response.json()["selectedDay"] == 3
    state = await authenticated_client.get("/api/planner/state")
    assert state.json()["selectedDay"] == 3


@pytest.mark.asyncio
async def test_itc_010a_day_and_index_bounds(authenticated_client: AsyncClient):
    await authenticated_client.post("/api/planner/generate", json={"days": 2})

    added = await authenticated_client.post("/api/planner/items", json={"title": "Before the trip", "day": -2})
    assert added.status_code == 422
    selected = await authenticated_client.put("/api/planner/selected-day", json={"day": -5})
    assert selected.status_code == 422
    assert "detail" in selected.json()
    moved = await authenticated_client.post("/api/planner/reorder",
                                            json={"day": 1, "sourceIndex": 0, "destIndex": -1})
    assert moved.status_code == 422

    state = await authenticated_client.get("/api/planner/state")
    assert state.json()["days"] == [1, 2]
    assert state.json()["selectedDay"] == 1
    assert state.json()["itinerary"][0]["title"] == "Morning exploration Day 1"


@pytest.mark.asyncio
async def test_itc_010b_stored_items_before_day_one_are_skipped(authenticated_client: AsyncClient,
                                                                 test_user: User, db_session: AsyncSession):
    db_session.add(PlanningState(user_id=test_user.id, selected_day=1, items=[
        {"id": "old", "day": 0, "title": "Saved before validation"},
        {"id": "kept", "day": 1, "title": "Casela park"},
    ]))
    await db_session.commit()

    state = await authenticated_client.get("/api/planner/state")

    assert state.status_code == 200
    assert [item["id"] for item in state.json()["itinerary"]] == ["kept"]


###############################################################
# 4. Travel assistant
###############################################################

@pytest.mark.asyncio
async def test_itc_011_emergency_short_circuit(client: AsyncClient, assistant_sources):
    response = await client.post("/api/travel-assistant",
                                 json={"message": "I need help, there's been an accident"})

    assert response.status_code == 200
    body = response.json()
    assert body["isEmergency"] is True
    assert body["success"] is True
    assert "Police: 999 or 112" in body["response"]
    for source in assistant_sources.values():
        source.assert_not_awaited()


@pytest.mark.asyncio
async def test_itc_012_weather_failure_keeps_search_results(client: AsyncClient, assistant_sources):
    assistant_sources["weather"].side_effect = RuntimeError("weather provider down")
    assistant_sources["search"].return_value = [SearchResult(title="Blue Bay guide", url="https://x", content="c"),
                                                SearchResult(title="Sea walk", url="https://y", content="d")]
    payload = {
        "message": "What should I do on day 2?",
        "itinerary": [{"id": "1", "day": 2, "title": "Creole Lunch", "description": "", "time": "13:00",
                       "location": "Mahebourg", "coordinates": [-20.4082, 57.7], "isLocked": False,
                       "category": "meal"}],
        "tripData": {"startDate": "2024-03-15", "endDate": "2024-03-18", "budget": "",
                     "travelStyle": "family", "groupSize": "small-group", "preferences": ""},
        "selectedDay": 2,
    }

    response = await client.post("/api/travel-assistant", json=payload)

    assert response.status_code == 200, response.text
    body = response.json()
    assert body["success"] is True
    assert body["response"] == "Spend the morning at Blue Bay."
    assert "isEmergency" not in body
    assert body["contextData"] == {"weatherIncluded": False, "searchResultsCount": 2,
                                   "activitiesCount": 1, "hasUserPreferences": False}
    system_prompt, user_prompt = assistant_sources["model"].await_args.args
    assert "Day 2: Creole Lunch at 13:00 (Mahebourg)" in system_prompt
    assert "planning Day 2" in user_prompt


@pytest.mark.asyncio
async def test_itc_013_model_failure_returns_fallback(client: AsyncClient, assistant_sources):
    assistant_sources["model"].side_effect = LanguageModelError("Gemini API key not configured")

    response = await client.post("/api/travel-assistant", json={"message": "Best beaches?"})

    assert response.status_code == 500
    assert response.json() == {"error": "Gemini API key not configured",
                               "response": FALLBACK_MODEL_MESSAGE, "success": False}


@pytest.mark.asyncio
async def test_itc_014_authenticated_chat_uses_and_saves_state(authenticated_client: AsyncClient,
                                                               assistant_sources, db_session: AsyncSession):
    await authenticated_client.put("/api/planner/trip", json={"startDate": "2024-03-15", "endDate": "2024-03-16",
                                                               "travelStyle": "adventure"})

    response = await authenticated_client.post("/api/travel-assistant", json={"message": "Any snorkel spots?"})

    assert response.status_code == 200, response.text
    system_prompt, _ = assistant_sources["model"].await_args.args
    assert "Free time - Day 1" in system_prompt
    assert "Style: adventure" in system_prompt
    assistant_sources["preferences"].assert_awaited_once_with("existing-user-token")

    row = (await db_session.execute(select(UserPreference))).scalars().first()
    assert len(row.ai_interactions) == 1
    assert row.ai_interactions[0]["user_message"] == "Any snorkel spots?"
    assert row.ai_interactions[0]["context"]["itinerary_count"] == 2
    assert row.preferences_analysis.startswith("User shows preference for outdoor activities")


@pytest.mark.asyncio
async def test_itc_015_failed_history_save_is_not_surfaced(authenticated_client: AsyncClient, assistant_sources,
                                                           mocker):
    mocker.patch('app.services.assistant_service.record_interaction', new_callable=AsyncMock,
                 side_effect=Exception("database is locked"))

    response = await authenticated_client.post("/api/travel-assistant", json={"message": "Dinner ideas?"})

    assert response.status_code == 200
    assert response.json()["success"] is True


@pytest.mark.asyncio
async def test_itc_016_quick_suggestions(client: AsyncClient):
    response = await client.post("/api/travel-assistant/suggestions",
                                 json={"preferences": "love culture and food", "travelStyle": "luxury"})
    assert response.status_code == 200
    assert response.json()["suggestions"] == [
        "Cultural sites to visit", "Local food recommendations", "What's the weather like today?"]


@pytest.mark.asyncio
async def test_itc_016a_unreadable_budget_is_ignored(client: AsyncClient, assistant_sources):
    response = await client.post("/api/travel-assistant",
                                 json={"message": "beach ideas", "tripData": {"budget": "about 2000"}})

    assert response.status_code == 200, response.text
    assert response.json()["success"] is True
    system_prompt, _ = assistant_sources["model"].await_args.args
    assert "Budget: Not specified" in system_prompt


@pytest.mark.asyncio
async def test_itc_016b_malformed_chat_body_gets_fallback_reply(client: AsyncClient, assistant_sources):
    response = await client.post("/api/travel-assistant",
                                 json={"itinerary": [{"id": "1", "day": 0, "title": "Nowhere"}]})

    assert response.status_code == 500
    body = response.json()
    assert body["success"] is False
    assert body["response"] == FALLBACK_GENERIC_MESSAGE
    assert "message" in body["error"]
    assistant_sources["model"].assert_not_awaited()


###############################################################
# 4b. Food mood matching
###############################################################

@pytest.mark.asyncio
async def test_itc_016c_food_moods(client: AsyncClient):
    response = await client.get("/api/food/moods")
    assert response.status_code == 200
    assert len(response.json()) == 10
    assert response.json()[1] == {"emoji": "🌶️", "mood": "spicy", "label": "Spicy Mood"}


@pytest.mark.asyncio
async def test_itc_016d_food_matches(client: AsyncClient):
    response = await client.post("/api/food/matches", json={"moods": ["seafood"], "query": "octopus"})
    assert response.status_code == 200
    body = response.json()
    assert body["exactMatch"] is True
    assert [dish["name"] for dish in body["matches"]] == ["Octopus Curry"]

    fallback = await client.post("/api/food/matches", json={"moods": ["festive"], "query": "sushi"})
    assert fallback.json()["exactMatch"] is False
    assert [dish["name"] for dish in fallback.json()["matches"]] == [
        "Dholl Puri", "Fish Vindaye", "Tropical Fruit Salad"]


@pytest.mark.asyncio
async def test_itc_016e_food_matches_need_a_mood_or_query(client: AsyncClient):
    response = await client.post("/api/food/matches", json={"moods": [], "query": "   "})
    assert response.status_code == 400


###############################################################
# 5. Storage-backed services
###############################################################
from app.services.preference_service import record_interaction, load_user_preferences
from app.services.activity_service import fetch_activities
from scripts.seed_activities import seed_activities, STARTER_ACTIVITIES


def make_interaction(index: int) -> AssistantInteraction:
    return AssistantInteraction(
        id=str(index), timestamp="2024-03-15T10:00:00+00:00",
        user_message=f"message {index}", ai_response="ok",
        context=InteractionContext(selected_day=1, itinerary_count=0),
    )


@pytest.mark.asyncio
async def test_itc_017_history_keeps_latest_fifty(db_session: AsyncSession, test_user: User):
    for index in range(1, 56):
        await record_interaction(db_session, test_user, make_interaction(index))

    row = (await db_session.execute(select(UserPreference))).scalars().one()
    assert len(row.ai_interactions) == 50
    assert row.ai_interactions[0]["id"] == "6"
    assert row.ai_interactions[-1]["id"] == "55"


@pytest.mark.asyncio
async def test_itc_018_load_user_preferences(db_session: AsyncSession, test_user: User, mock_firebase_auth,
                                             db_session_manager, mocker):
    mocker.patch('app.services.preference_service.get_db_session', return_value=db_session_manager)
    mock_firebase_auth.verify_id_token.return_value = {'uid': test_user.firebase_uid}

    assert await load_user_preferences(None) is None
    assert await load_user_preferences("valid-token") is None

    await record_interaction(db_session, test_user, make_interaction(1))
    snapshot = await load_user_preferences("valid-token")
    assert len(snapshot.ai_interactions) == 1
    assert snapshot.preferences_analysis is not None


@pytest.mark.asyncio
async def test_itc_019_seed_and_fetch_activities(db_session: AsyncSession, db_session_manager, mocker):
    mocker.patch('app.services.activity_service.get_db_session', return_value=db_session_manager)

    assert await seed_activities(db_session) == len(STARTER_ACTIVITIES)
    assert await seed_activities(db_session) == 0

    activities = await fetch_activities()
    assert len(activities) == len(STARTER_ACTIVITIES)
    assert {"title", "category", "location", "cost_estimate_usd"} <= set(activities[0])

    db_session.add_all([Activity(title=f"Extra {i}") for i in range(60)])
    await db_session.commit()
    assert len(await fetch_activities()) == 50
