from sqlalchemy.orm import relationship
from sqlalchemy import Column, Integer, String, Text, JSON, ForeignKey, Float, DateTime
from datetime import datetime as dt

from app.database.connection import Base


class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True)
    firebase_uid = Column(String(255), unique=True, index=True, nullable=False)
    email = Column(Text, unique=True, nullable=False, index=True)
    full_name = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=dt.utcnow, nullable=False)

    planning_state = relationship("PlanningState", back_populates="user", uselist=False,
                                  cascade="all, delete-orphan")
    preferences = relationship("UserPreference", back_populates="user", uselist=False,
                               cascade="all, delete-orphan")


class PlanningState(Base):
    """Shared trip-planning state: trip data, itinerary items and the selected day in one row."""
    __tablename__ = "planning_states"
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)
    trip_data = Column(JSON, nullable=True)
    items = Column(JSON, nullable=False, default=list)
    selected_day = Column(Integer, nullable=False, default=1)
    updated_at = Column(DateTime, default=dt.utcnow, onupdate=dt.utcnow, nullable=False)
    user = relationship("User", back_populates="planning_state")


class UserPreference(Base):
    __tablename__ = "user_preferences"
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)
    ai_interactions = Column(JSON, nullable=False, default=list)
    preferences_analysis = Column(Text, nullable=True)
    updated_at = Column(DateTime, default=dt.utcnow, nullable=False)
    user = relationship("User", back_populates="preferences")


class Activity(Base):
    __tablename__ = "mauritius_activities"
    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    category = Column(String(100), nullable=True)
    location = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    cost_estimate_usd = Column(Float, nullable=True)
