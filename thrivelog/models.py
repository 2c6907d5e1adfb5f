"""SQLAlchemy models for the Thrivelog backend."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.sql import func

from .database import Base


class FoodLog(Base):
    __tablename__ = "food_logs"

    id: int = Column(Integer, primary_key=True, index=True)
    user_id: str = Column(String(64), index=True, nullable=False)
    food: str = Column(String(255), nullable=False)
    notes: Optional[str] = Column(Text)
    category: Optional[str] = Column(String(100))
    photo_url: Optional[str] = Column(Text)
    time: Optional[datetime] = Column(DateTime(timezone=True), index=True)
    created_at: datetime = Column(
        DateTime(timezone=True), server_default=func.current_timestamp()
    )


class SymptomLog(Base):
    __tablename__ = "symptom_logs"

    id: int = Column(Integer, primary_key=True, index=True)
    user_id: str = Column(String(64), index=True, nullable=False)
    symptom: str = Column(String(255), nullable=False)
    intensity: Optional[int] = Column(Integer)
    time: Optional[datetime] = Column(DateTime(timezone=True), index=True)
    notes: Optional[str] = Column(Text)
    created_at: datetime = Column(
        DateTime(timezone=True), server_default=func.current_timestamp()
    )


class ProductLog(Base):
    __tablename__ = "product_logs"

    id: int = Column(Integer, primary_key=True, index=True)
    user_id: str = Column(String(64), index=True, nullable=False)
    product: str = Column(String(255), nullable=False)
    notes: Optional[str] = Column(Text)
    category: Optional[str] = Column(String(100))
    photo_url: Optional[str] = Column(Text)
    time: Optional[datetime] = Column(DateTime(timezone=True), index=True)
    created_at: datetime = Column(
        DateTime(timezone=True), server_default=func.current_timestamp()
    )


class CanonEvent(Base):
    __tablename__ = "canon_events"

    id: int = Column(Integer, primary_key=True, index=True)
    user_id: str = Column(String(64), index=True, nullable=False)
    title: str = Column(String(255), nullable=False)
    intensity: Optional[int] = Column(Integer)
    event_time: datetime = Column(DateTime(timezone=True), index=True, nullable=False)
    notes: Optional[str] = Column(Text)
    category: Optional[str] = Column(String(100))
    emotional_impact: Optional[str] = Column(Text)
    closed_time: Optional[datetime] = Column(DateTime(timezone=True))
    created_at: datetime = Column(
        DateTime(timezone=True), server_default=func.current_timestamp()
    )


class Day(Base):
    __tablename__ = "days"
    __table_args__ = (UniqueConstraint("user_id", "date", name="uq_days_user_date"),)

    id: int = Column(Integer, primary_key=True, index=True)
    user_id: str = Column(String(64), index=True, nullable=False)
    date: date = Column(Date, nullable=False)
    is_period: bool = Column(Boolean, default=False)
    is_pooped: bool = Column(Boolean, default=False)
    is_housekeeping_day: bool = Column(Boolean, default=False)
    reflection: Optional[str] = Column(Text)
    temperature: Optional[float] = Column(Float)


class Persona(Base):
    __tablename__ = "personas"

    id: int = Column(Integer, primary_key=True, index=True)
    user_id: str = Column(String(64), index=True, nullable=False)
    name: str = Column(String(255), nullable=False)
    relationship: Optional[str] = Column(String(255))
    personality: Optional[str] = Column(Text)
    communication_style: Optional[str] = Column(Text)
    interests: Optional[str] = Column(Text)
    memories: Optional[str] = Column(Text)
    speaking_style: Optional[str] = Column(Text)
    avatar: Optional[str] = Column(String(255))
    created_at: datetime = Column(
        DateTime(timezone=True), server_default=func.current_timestamp()
    )


class Profile(Base):
    __tablename__ = "profiles"

    id: str = Column(String(64), primary_key=True)
    name: Optional[str] = Column(String(255))
    gender: Optional[str] = Column(String(64))
    language: Optional[str] = Column(String(16))
    about: Optional[str] = Column(Text)
    tracking_prefs: Optional[Any] = Column(JSON)
    created_at: datetime = Column(
        DateTime(timezone=True), server_default=func.current_timestamp()
    )
    updated_at: Optional[datetime] = Column(DateTime(timezone=True))


class Reflection(Base):
    __tablename__ = "reflections"

    id: int = Column(Integer, primary_key=True, index=True)
    user_id: str = Column(String(64), index=True, nullable=False)
    text: Optional[str] = Column(Text)
    photo_url: Optional[str] = Column(Text)
    voice_url: Optional[str] = Column(Text)
    voice_duration: Optional[float] = Column(Float)
    prompt_question: Optional[str] = Column(Text, index=True)
    mood_rating: Optional[int] = Column(Integer)
    # Persisted without tag provenance
    tags: Optional[List[str]] = Column(JSON)
    groq_mood_label: Optional[str] = Column(String(100))
    groq_mood_score: Optional[int] = Column(Integer)
    groq_confidence: Optional[float] = Column(Float)
    groq_analysis_timestamp: Optional[datetime] = Column(DateTime(timezone=True))
    created_at: datetime = Column(
        DateTime(timezone=True), index=True, server_default=func.current_timestamp()
    )


class AdaptivePrompt(Base):
    __tablename__ = "adaptive_prompts"

    id: int = Column(Integer, primary_key=True, index=True)
    user_id: str = Column(String(64), index=True, nullable=False)
    prompts: Optional[Any] = Column(JSON)
    created_at: datetime = Column(
        DateTime(timezone=True), server_default=func.current_timestamp()
    )


class AfterEffect(Base):
    __tablename__ = "after_effects"

    id: int = Column(Integer, primary_key=True, index=True)
    user_id: str = Column(String(64), index=True, nullable=False)
    log_type: str = Column(String(32), nullable=False)
    log_id: Optional[int] = Column(Integer)
    log_name: Optional[str] = Column(String(255))
    response: Optional[str] = Column(Text)
    created_at: datetime = Column(
        DateTime(timezone=True), index=True, server_default=func.current_timestamp()
    )
