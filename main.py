# file: main.py

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv
import logging

load_dotenv()

logging.basicConfig(level=logging.INFO)

from app.controllers.auth import router as auth_router
from app.controllers.planner import router as planner_router
from app.controllers.assistant import router as assistant_router, chat_validation_handler
from app.controllers.food import router as food_router
from fastapi.exceptions import RequestValidationError
from app.database.connection import init_db

app = FastAPI(title="DreamTrip API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
)

app.include_router(auth_router, prefix="/auth", tags=["auth"])
app.include_router(planner_router, prefix="/api/planner", tags=["planner"])
app.include_router(assistant_router, prefix="/api/travel-assistant", tags=["assistant"])
app.include_router(food_router, prefix="/api/food", tags=["food"])

app.add_exception_handler(RequestValidationError, chat_validation_handler)


@app.get("/")
async def root():
    return {"message": "DreamTrip API is running"}

@app.on_event("startup")
async def startup_event():
    await init_db()
