from fastapi import APIRouter, Depends, Header, Request
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
import logging

from app.database.connection import get_db
from app.models.assistant import ChatRequest, ChatResponse, SuggestionsResponse
from app.models.itinerary import TripData
from app.services.assistant_service import (
    FALLBACK_GENERIC_MESSAGE, handle_chat, fallback_message_for, generate_quick_suggestions,
)
from app.services.firebase_auth import bearer_token

router = APIRouter()
logger = logging.getLogger(__name__)

CHAT_PATH = "/api/travel-assistant"


def chat_failure(error: str, reply: str) -> JSONResponse:
    return JSONResponse(
        status_code=500,
        content={"error": error, "response": reply, "success": False},
    )


async def chat_validation_handler(request: Request, exc: RequestValidationError):
    """The chat widget always expects reply text, even when its request body was malformed."""
    if request.url.path.rstrip("/") != CHAT_PATH:
        return await request_validation_exception_handler(request, exc)
    problems = "; ".join(
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in exc.errors()
    )
    logger.warning(f"Malformed travel assistant request: {problems}")
    return chat_failure(f"Invalid request: {problems}", FALLBACK_GENERIC_MESSAGE)


@router.post("", response_model=ChatResponse, response_model_exclude_none=True)
async def travel_assistant(
        chat_request: ChatRequest,
        authorization: Optional[str] = Header(default=None),
        db: AsyncSession = Depends(get_db)
):
    try:
        return await handle_chat(chat_request, bearer_token(authorization), db)
    except Exception as e:
        logger.error(f"Travel assistant error: {e}", exc_info=True)
        return chat_failure(str(e), fallback_message_for(e))


@router.post("/suggestions", response_model=SuggestionsResponse)
async def quick_suggestions(trip_data: Optional[TripData] = None):
    return SuggestionsResponse(suggestions=generate_quick_suggestions(trip_data))
