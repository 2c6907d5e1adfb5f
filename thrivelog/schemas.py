"""Pydantic schemas used by the FastAPI application."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from .errors import ErrorKind, MalformedResponseError, ProviderError, RateLimitExceeded


class TagSource(str, Enum):
    GROQ = "groq"
    GEMINI = "gemini"


class PromptSource(str, Enum):
    STORED = "stored"
    GENERATED = "generated"
    FALLBACK = "fallback"


class LogType(str, Enum):
    FOOD = "food"
    SYMPTOM = "symptom"
    PRODUCT = "product"
    CANON = "canon"


class _ORMModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# Logs


class FoodLogCreate(BaseModel):
    food: str
    notes: Optional[str] = None
    category: Optional[str] = None
    photo_url: Optional[str] = None
    time: Optional[datetime] = None


class FoodLogRead(_ORMModel):
    id: int
    food: str
    notes: Optional[str] = None
    category: Optional[str] = None
    photo_url: Optional[str] = None
    time: Optional[datetime] = None
    created_at: Optional[datetime] = None


class SymptomLogCreate(BaseModel):
    symptom: str
    intensity: Optional[int] = Field(default=None, ge=0, le=10)
    time: Optional[datetime] = None
    notes: Optional[str] = None


class SymptomLogRead(_ORMModel):
    id: int
    symptom: str
    intensity: Optional[int] = None
    time: Optional[datetime] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None


class ProductLogCreate(BaseModel):
    product: str
    notes: Optional[str] = None
    category: Optional[str] = None
    photo_url: Optional[str] = None
    time: Optional[datetime] = None


class ProductLogRead(_ORMModel):
    id: int
    product: str
    notes: Optional[str] = None
    category: Optional[str] = None
    photo_url: Optional[str] = None
    time: Optional[datetime] = None
    created_at: Optional[datetime] = None


class CanonEventCreate(BaseModel):
    title: str
    event_time: datetime
    intensity: Optional[int] = None
    notes: Optional[str] = None
    category: Optional[str] = None
    emotional_impact: Optional[str] = None


class CanonEventRead(_ORMModel):
    id: int
    title: str
    event_time: datetime
    intensity: Optional[int] = None
    notes: Optional[str] = None
    category: Optional[str] = None
    emotional_impact: Optional[str] = None
    closed_time: Optional[datetime] = None
    created_at: Optional[datetime] = None


class AfterEffectCreate(BaseModel):
    log_type: LogType
    log_id: Optional[int] = None
    response: Optional[str] = None
    log_name: Optional[str] = None


class AfterEffectRead(_ORMModel):
    id: int
    log_type: str
    log_id: Optional[int] = None
    log_name: Optional[str] = None
    response: Optional[str] = None
    created_at: Optional[datetime] = None


# Days


class DayUpdate(BaseModel):
    is_period: Optional[bool] = None
    is_pooped: Optional[bool] = None
    is_housekeeping_day: Optional[bool] = None
    reflection: Optional[str] = None
    temperature: Optional[float] = None


class DayRead(BaseModel):
    date: str
    is_period: bool = False
    is_pooped: bool = False
    is_housekeeping_day: bool = False
    reflection: str = ""
    temperature: Optional[float] = None


class DaySummary(BaseModel):
    date: str
    day: DayRead
    food_logs: List[FoodLogRead]
    symptom_logs: List[SymptomLogRead]
    product_logs: List[ProductLogRead]
    canon_events: List[CanonEventRead]
    after_effects: List[AfterEffectRead]
    reflections: List["ReflectionRead"]
    meals_logged: int
    symptoms_logged: int
    canon_responses: Dict[int, Optional[str]] = Field(
        default_factory=dict,
        description="Latest after-effect response recorded for each canon event",
    )


# Personas and profiles


class PersonaBase(BaseModel):
    name: str
    relationship: Optional[str] = None
    personality: Optional[str] = None
    communication_style: Optional[str] = None
    interests: Optional[str] = None
    memories: Optional[str] = None
    speaking_style: Optional[str] = None
    avatar: Optional[str] = None


class PersonaCreate(PersonaBase):
    pass


class PersonaUpdate(BaseModel):
    name: Optional[str] = None
    relationship: Optional[str] = None
    personality: Optional[str] = None
    communication_style: Optional[str] = None
    interests: Optional[str] = None
    memories: Optional[str] = None
    speaking_style: Optional[str] = None
    avatar: Optional[str] = None


class PersonaRead(PersonaBase, _ORMModel):
    id: int
    created_at: Optional[datetime] = None


class ChatTurn(BaseModel):
    text: str
    is_user: bool = Field(default=False, description="True when the user wrote this turn")


class PersonaContext(BaseModel):
    mood: Optional[str] = None
    theme: Optional[str] = None
    reflection_text: Optional[str] = None


class PersonaStarterRequest(BaseModel):
    context: Optional[PersonaContext] = None


class PersonaReplyRequest(BaseModel):
    message: str
    history: List[ChatTurn] = Field(default_factory=list)
    context: Optional[PersonaContext] = None


class PersonaReply(BaseModel):
    persona_id: str
    text: str


class ProfileBase(BaseModel):
    name: Optional[str] = None
    gender: Optional[str] = None
    language: Optional[str] = None
    about: Optional[str] = None
    tracking_prefs: Optional[Dict[str, Any]] = None


class ProfileRead(ProfileBase, _ORMModel):
    id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# Reflections


class ReflectionCreate(BaseModel):
    text: Optional[str] = None
    photo_url: Optional[str] = None
    voice_url: Optional[str] = None
    voice_duration: Optional[float] = None
    prompt_question: Optional[str] = None
    mood_rating: Optional[int] = Field(default=None, ge=1, le=5)
    tags: List[str] = Field(default_factory=list)
    groq_mood_label: Optional[str] = None
    groq_mood_score: Optional[int] = Field(default=None, ge=1, le=10)
    groq_confidence: Optional[float] = Field(default=None, ge=0, le=1)
    groq_analysis_timestamp: Optional[datetime] = None


class ReflectionUpdate(BaseModel):
    text: Optional[str] = None
    photo_url: Optional[str] = None
    voice_url: Optional[str] = None
    voice_duration: Optional[float] = None
    prompt_question: Optional[str] = None
    mood_rating: Optional[int] = Field(default=None, ge=1, le=5)
    tags: Optional[List[str]] = None


class ReflectionRead(_ORMModel):
    id: int
    text: Optional[str] = None
    photo_url: Optional[str] = None
    voice_url: Optional[str] = None
    voice_duration: Optional[float] = None
    prompt_question: Optional[str] = None
    mood_rating: Optional[int] = None
    tags: Optional[List[str]] = None
    groq_mood_label: Optional[str] = None
    groq_mood_score: Optional[int] = None
    groq_confidence: Optional[float] = None
    groq_analysis_timestamp: Optional[datetime] = None
    created_at: Optional[datetime] = None


class MediaUpload(BaseModel):
    url: str
    path: str


# Prompts


class PromptState(BaseModel):
    questions: List[str]
    current_index: int = 0
    notice: Optional[str] = Field(
        default=None,
        description="User-facing advisory, shown once when set",
    )
    source: PromptSource = PromptSource.STORED

    @property
    def current_question(self) -> Optional[str]:
        if 0 <= self.current_index < len(self.questions):
            return self.questions[self.current_index]
        return None


class PromptNavigation(BaseModel):
    questions: List[str]
    current_index: int = 0


# Analysis


class ImageAnalysis(BaseModel):
    caption: str
    mood_tags: List[str] = Field(default_factory=list)
    mood: str
    provider: Optional[str] = Field(
        default=None,
        description="Provider that produced the analysis; None for the built-in default",
    )


class ImageUrlRequest(BaseModel):
    image_url: str


class MoodAnalysis(BaseModel):
    groq_mood_label: str
    groq_mood_score: int = Field(..., ge=1, le=10)
    groq_confidence: float = Field(..., ge=0, le=1)
    groq_analysis_timestamp: datetime


class TextRequest(BaseModel):
    text: str


class TagMergeRequest(BaseModel):
    selected: List[str] = Field(default_factory=list)
    sources: Dict[str, TagSource] = Field(default_factory=dict)
    text_tags: List[str] = Field(default_factory=list)
    image_tags: List[str] = Field(default_factory=list)
    clear_image: bool = False


class TagMergeResponse(BaseModel):
    selected: List[str]
    sources: Dict[str, TagSource]


class WeeklyDigest(BaseModel):
    summary: str
    bullets: List[str]
    tip: str
    theme: Optional[str] = None


class MoodArtRequest(BaseModel):
    mood: str
    theme: Optional[str] = None
    postcard_text: str = ""


class MoodArt(BaseModel):
    image_url: str
    mood: str
    theme: Optional[str] = None
    postcard_text: str = ""
    prompt: str


class TranslateRequest(BaseModel):
    text: str
    language: str = "en"
    context: str = ""


class TranslateResponse(BaseModel):
    text: str
    language: str


class Transcription(BaseModel):
    text: str
    language: str


class FoodGroup(BaseModel):
    food: str
    group: Optional[str] = None


# Provider results


class ProviderSuccess(BaseModel):
    provider: str
    ok: Literal[True] = True
    data: Any = None


class ProviderFailure(BaseModel):
    provider: str
    ok: Literal[False] = False
    kind: ErrorKind
    message: str
    retry_after_seconds: Optional[float] = None


ProviderResult = Union[ProviderSuccess, ProviderFailure]


def normalize_provider_result(
    provider: str, outcome: Union[BaseException, Any]
) -> ProviderResult:
    """Fold a provider return value or exception into a ``ProviderResult``."""

    if isinstance(outcome, RateLimitExceeded):
        return ProviderFailure(
            provider=provider,
            kind=ErrorKind.RATE_LIMITED,
            message=str(outcome),
            retry_after_seconds=outcome.wait_seconds,
        )
    if isinstance(outcome, ProviderError):
        return ProviderFailure(
            provider=outcome.provider or provider,
            kind=outcome.kind,
            message=outcome.message,
        )
    if isinstance(outcome, BaseException):
        kind = (
            ErrorKind.MALFORMED
            if isinstance(outcome, MalformedResponseError)
            else ErrorKind.UNKNOWN
        )
        return ProviderFailure(provider=provider, kind=kind, message=str(outcome))
    return ProviderSuccess(provider=provider, data=outcome)


class RateLimitStatus(BaseModel):
    provider: str
    window_seconds: float
    max_requests: int
    min_interval_seconds: float
    requests_in_window: int = 0
    wait_seconds: float = 0.0
    summary: str = ""


DaySummary.model_rebuild()
