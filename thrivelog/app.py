"""FastAPI application exposing the Thrivelog backend."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, Generator, List, Optional

from fastapi import Depends, FastAPI, File, Form, Header, HTTPException, Query, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from . import models
from .config import PROVIDER_RATE_LIMITS
from .database import SessionLocal, init_database
from .errors import (
    ErrorKind,
    NotAuthenticatedError,
    NotFoundError,
    ProviderError,
    RateLimitExceeded,
    StorageError,
    ThrivelogError,
)
from .food_groups import FoodGroupLookup
from .mood_analysis import MoodAnalyzer, MoodTagSelection, fetch_image
from .mood_art import generate_mood_art
from .personas import PersonaChat
from .prompt_rotation import AdaptivePromptGenerator, PromptRotation
from .providers import AnthropicClient, FalClient, GeminiClient, GroqClient, OpenAIClient
from .rate_limit_config import describe_rate_limits, effective_rate_limits
from .rate_limiter import ProviderRateLimiters
from .schemas import (
    AfterEffectCreate,
    AfterEffectRead,
    CanonEventCreate,
    CanonEventRead,
    DayRead,
    DaySummary,
    DayUpdate,
    FoodGroup,
    FoodLogCreate,
    FoodLogRead,
    ImageAnalysis,
    ImageUrlRequest,
    MediaUpload,
    MoodAnalysis,
    MoodArt,
    MoodArtRequest,
    PersonaCreate,
    PersonaRead,
    PersonaReply,
    PersonaReplyRequest,
    PersonaStarterRequest,
    PersonaUpdate,
    ProductLogCreate,
    ProductLogRead,
    ProfileBase,
    ProfileRead,
    PromptNavigation,
    PromptState,
    RateLimitStatus,
    ReflectionCreate,
    ReflectionRead,
    ReflectionUpdate,
    SymptomLogCreate,
    SymptomLogRead,
    TagMergeRequest,
    TagMergeResponse,
    TextRequest,
    Transcription,
    TranslateRequest,
    TranslateResponse,
    WeeklyDigest,
    normalize_provider_result,
)
from .storage import ReflectionStorage
from .store import (
    after_effects,
    canon_events,
    day_summary,
    days,
    food_logs,
    personas,
    product_logs,
    profiles,
    reflections,
    symptom_logs,
)
from .summary import generate_weekly_digest
from .transcription import transcribe_and_translate
from .translation import TranslationService

logger = logging.getLogger(__name__)

API_VERSION = "1.0"

RATE_LIMITS = effective_rate_limits(PROVIDER_RATE_LIMITS)
rate_limiters = ProviderRateLimiters.from_config(RATE_LIMITS)

gemini_client = GeminiClient()
groq_client = GroqClient()
openai_client = OpenAIClient()
anthropic_client = AnthropicClient()
fal_client = FalClient()

translation_service = TranslationService(openai_client, rate_limiters.get("openai"))
food_group_lookup = FoodGroupLookup()
reflection_storage = ReflectionStorage()


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_user_id(x_user_id: Optional[str] = Header(default=None)) -> str:
    if not x_user_id or not x_user_id.strip():
        raise NotAuthenticatedError()
    return x_user_id.strip()


def get_rate_limiters() -> ProviderRateLimiters:
    return rate_limiters


def get_gemini() -> GeminiClient:
    return gemini_client


def get_groq() -> GroqClient:
    return groq_client


def get_openai() -> OpenAIClient:
    return openai_client


def get_anthropic() -> AnthropicClient:
    return anthropic_client


def get_fal() -> FalClient:
    return fal_client


def get_translation_service() -> TranslationService:
    return translation_service


def get_food_group_lookup() -> FoodGroupLookup:
    return food_group_lookup


def get_storage() -> ReflectionStorage:
    return reflection_storage


def get_mood_analyzer(
    gemini: GeminiClient = Depends(get_gemini),
    groq: GroqClient = Depends(get_groq),
    limiters: ProviderRateLimiters = Depends(get_rate_limiters),
) -> MoodAnalyzer:
    return MoodAnalyzer(gemini, groq, limiters.get("gemini"), limiters.get("groq"))


def get_persona_chat(gemini: GeminiClient = Depends(get_gemini)) -> PersonaChat:
    return PersonaChat(gemini)


def get_prompt_rotation(
    db: Session = Depends(get_db),
    anthropic: AnthropicClient = Depends(get_anthropic),
) -> PromptRotation:
    return PromptRotation(db, AdaptivePromptGenerator(anthropic))


@asynccontextmanager
async def lifespan(app: FastAPI):  # pragma: no cover - startup/shutdown glue
    init_database()
    logger.info("Thrivelog backend ready")
    yield
    logger.info("Thrivelog backend shutting down")


app = FastAPI(title="Thrivelog", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(NotAuthenticatedError)
async def _not_authenticated(request: Request, exc: NotAuthenticatedError) -> JSONResponse:
    return JSONResponse(status_code=401, content={"detail": str(exc)})


@app.exception_handler(NotFoundError)
async def _not_found(request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(RateLimitExceeded)
async def _rate_limited(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    return JSONResponse(
        status_code=429,
        content={
            "detail": str(exc),
            "provider": exc.provider,
            "retry_after_seconds": round(exc.wait_seconds, 2),
        },
    )


@app.exception_handler(ProviderError)
async def _provider_failed(request: Request, exc: ProviderError) -> JSONResponse:
    failure = normalize_provider_result(exc.provider, exc)
    logger.warning("Provider call failed: %s", failure.message)
    limited = failure.kind in (ErrorKind.RATE_LIMITED, ErrorKind.QUOTA_EXCEEDED)
    return JSONResponse(
        status_code=429 if limited else 502,
        content={
            "detail": failure.message,
            "provider": failure.provider,
            "kind": failure.kind.value,
        },
    )


@app.exception_handler(StorageError)
async def _storage_failed(request: Request, exc: StorageError) -> JSONResponse:
    return JSONResponse(status_code=502, content={"detail": str(exc)})


@app.exception_handler(ThrivelogError)
async def _thrivelog_error(request: Request, exc: ThrivelogError) -> JSONResponse:
    logger.error("Unhandled application error: %s", exc)
    return JSONResponse(status_code=500, content={"detail": str(exc)})


@app.exception_handler(ValueError)
async def _bad_value(request: Request, exc: ValueError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.get("/")
async def root() -> Dict[str, Any]:
    return {
        "status": "active",
        "message": "Thrivelog is ready",
        "version": API_VERSION,
    }


@app.get("/health")
async def health_check(db: Session = Depends(get_db)) -> Dict[str, Any]:
    try:
        reflection_count = db.query(models.Reflection).count()
    except SQLAlchemyError as exc:
        logger.error("Health check could not reach the database: %s", exc)
        return {"status": "unhealthy", "error": str(exc), "version": API_VERSION}

    return {
        "status": "healthy",
        "version": API_VERSION,
        "database": "connected",
        "reflections_count": reflection_count,
        "providers": {
            "gemini": bool(gemini_client.api_key),
            "groq": bool(groq_client.api_key),
            "openai": bool(openai_client.api_key),
            "anthropic": bool(anthropic_client.api_key),
            "fal": bool(fal_client.api_key),
        },
    }


@app.get("/rate-limit-status", response_model=List[RateLimitStatus])
async def get_rate_limit_status(
    limiters: ProviderRateLimiters = Depends(get_rate_limiters),
) -> List[RateLimitStatus]:
    """Provide current throttle usage for frontend awareness."""
    described = describe_rate_limits(RATE_LIMITS)
    usage = limiters.status()
    return [
        RateLimitStatus(
            provider=provider,
            window_seconds=limits["window_seconds"],
            max_requests=int(limits["max_requests"]),
            min_interval_seconds=limits["min_interval_seconds"],
            requests_in_window=int(usage.get(provider, {}).get("requests_in_window", 0)),
            wait_seconds=usage.get(provider, {}).get("wait_seconds", 0.0),
            summary=limits["summary"],
        )
        for provider, limits in described.items()
    ]


# Logs


@app.post("/food-logs", response_model=FoodLogRead)
async def create_food_log(
    payload: FoodLogCreate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id),
) -> models.FoodLog:
    return food_logs.add_food_log(db, user_id, **payload.model_dump())


@app.get("/food-logs", response_model=List[FoodLogRead])
async def list_food_logs(
    day: Optional[str] = Query(default=None, alias="date"),
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id),
) -> List[models.FoodLog]:
    return food_logs.get_food_logs(db, user_id, day)


@app.get("/food-logs/distinct", response_model=List[str])
async def list_distinct_foods(
    db: Session = Depends(get_db), user_id: str = Depends(get_user_id)
) -> List[str]:
    return food_logs.get_distinct_foods(db, user_id)


@app.post("/symptom-logs", response_model=SymptomLogRead)
async def create_symptom_log(
    payload: SymptomLogCreate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id),
) -> models.SymptomLog:
    return symptom_logs.add_symptom_log(db, user_id, **payload.model_dump())


@app.get("/symptom-logs", response_model=List[SymptomLogRead])
async def list_symptom_logs(
    day: Optional[str] = Query(default=None, alias="date"),
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id),
) -> List[models.SymptomLog]:
    return symptom_logs.get_symptom_logs(db, user_id, day)


@app.post("/product-logs", response_model=ProductLogRead)
async def create_product_log(
    payload: ProductLogCreate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id),
) -> models.ProductLog:
    return product_logs.add_product_log(db, user_id, **payload.model_dump())


@app.get("/product-logs", response_model=List[ProductLogRead])
async def list_product_logs(
    day: Optional[str] = Query(default=None, alias="date"),
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id),
) -> List[models.ProductLog]:
    return product_logs.get_product_logs(db, user_id, day)


@app.get("/product-logs/distinct", response_model=List[str])
async def list_distinct_products(
    db: Session = Depends(get_db), user_id: str = Depends(get_user_id)
) -> List[str]:
    return product_logs.get_distinct_products(db, user_id)


# Canon events


@app.post("/canon-events", response_model=CanonEventRead)
async def create_canon_event(
    payload: CanonEventCreate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id),
) -> models.CanonEvent:
    return canon_events.add_canon_event(db, user_id, **payload.model_dump())


@app.get("/canon-events", response_model=List[CanonEventRead])
async def list_canon_events(
    day: Optional[str] = Query(default=None, alias="date"),
    start: Optional[str] = None,
    end: Optional[str] = None,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id),
) -> List[models.CanonEvent]:
    if day:
        return canon_events.get_canon_events_for_day(db, user_id, day)
    if start and end:
        return canon_events.get_canon_events_for_period(db, user_id, start, end)
    raise HTTPException(status_code=400, detail="Pass either date or start and end")


@app.post("/canon-events/{event_id}/close", response_model=CanonEventRead)
async def close_canon_event(
    event_id: int,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id),
) -> models.CanonEvent:
    return canon_events.close_canon_event(db, user_id, event_id)


# Days


def _day_read(row: models.Day) -> DayRead:
    return DayRead(
        date=row.date.isoformat(),
        is_period=bool(row.is_period),
        is_pooped=bool(row.is_pooped),
        is_housekeeping_day=bool(row.is_housekeeping_day),
        reflection=row.reflection or "",
        temperature=row.temperature,
    )


@app.get("/days", response_model=List[DayRead])
async def list_days_for_month(
    year: int = Query(..., ge=1),
    month: int = Query(..., ge=1, le=12),
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id),
) -> List[DayRead]:
    return [_day_read(row) for row in days.get_days_for_month(db, user_id, year, month)]


@app.get("/days/{date_str}", response_model=DayRead)
async def get_day(
    date_str: str, db: Session = Depends(get_db), user_id: str = Depends(get_user_id)
) -> DayRead:
    return DayRead(**days.get_day(db, user_id, date_str))


@app.put("/days/{date_str}", response_model=DayRead)
async def set_day(
    date_str: str,
    payload: DayUpdate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id),
) -> DayRead:
    row = days.set_day(db, user_id, payload.model_dump(exclude_unset=True), date_str)
    return _day_read(row)


@app.get("/days/{date_str}/summary", response_model=DaySummary)
async def get_day_summary(
    date_str: str, db: Session = Depends(get_db), user_id: str = Depends(get_user_id)
) -> DaySummary:
    summary = day_summary.get_day_summary(db, user_id, date_str)
    return DaySummary.model_validate(summary, from_attributes=True)


# After-effects


@app.post("/after-effects", response_model=AfterEffectRead)
async def create_after_effect(
    payload: AfterEffectCreate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id),
) -> models.AfterEffect:
    return after_effects.add_after_effect(
        db,
        user_id,
        log_type=payload.log_type.value,
        log_id=payload.log_id,
        response=payload.response,
        log_name=payload.log_name,
    )


@app.get("/after-effects", response_model=List[AfterEffectRead])
async def list_after_effects(
    day: Optional[str] = Query(default=None, alias="date"),
    start: Optional[str] = None,
    end: Optional[str] = None,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id),
) -> List[models.AfterEffect]:
    if day:
        return after_effects.get_after_effects_for_day(db, user_id, day)
    if start and end:
        return after_effects.get_after_effects_for_period(db, user_id, start, end)
    raise HTTPException(status_code=400, detail="Pass either date or start and end")


# Personas


def _stored_persona_details(
    db: Session, user_id: str, persona_id: str
) -> Optional[Dict[str, Any]]:
    """Load a user's persona when the id is numeric; built-in keys load nothing."""
    if not persona_id.isdigit():
        return None
    row = personas.get_persona_by_id(db, user_id, int(persona_id))
    return {field: getattr(row, field) for field in personas.PERSONA_FIELDS}


@app.post("/personas", response_model=PersonaRead)
async def create_persona(
    payload: PersonaCreate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id),
) -> models.Persona:
    return personas.create_persona(db, user_id, payload.model_dump())


@app.get("/personas", response_model=List[PersonaRead])
async def list_personas(
    db: Session = Depends(get_db), user_id: str = Depends(get_user_id)
) -> List[models.Persona]:
    return personas.get_personas(db, user_id)


@app.get("/personas/{persona_id}", response_model=PersonaRead)
async def get_persona(
    persona_id: int, db: Session = Depends(get_db), user_id: str = Depends(get_user_id)
) -> models.Persona:
    return personas.get_persona_by_id(db, user_id, persona_id)


@app.patch("/personas/{persona_id}", response_model=PersonaRead)
async def update_persona(
    persona_id: int,
    payload: PersonaUpdate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id),
) -> models.Persona:
    return personas.update_persona(
        db, user_id, persona_id, payload.model_dump(exclude_unset=True)
    )


@app.delete("/personas/{persona_id}")
async def delete_persona(
    persona_id: int, db: Session = Depends(get_db), user_id: str = Depends(get_user_id)
) -> Dict[str, Any]:
    return {"deleted": personas.delete_persona(db, user_id, persona_id)}


@app.post("/personas/{persona_id}/starter", response_model=PersonaReply)
async def persona_starter(
    persona_id: str,
    payload: Optional[PersonaStarterRequest] = None,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id),
    chat: PersonaChat = Depends(get_persona_chat),
) -> PersonaReply:
    details = _stored_persona_details(db, user_id, persona_id)
    context = payload.context.model_dump() if payload and payload.context else None
    text = await chat.conversation_starter(persona_id, context, details)
    return PersonaReply(persona_id=persona_id, text=text)


@app.post("/personas/{persona_id}/reply", response_model=PersonaReply)
async def persona_reply(
    persona_id: str,
    payload: PersonaReplyRequest,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id),
    chat: PersonaChat = Depends(get_persona_chat),
) -> PersonaReply:
    details = _stored_persona_details(db, user_id, persona_id)
    text = await chat.respond(
        persona_id,
        payload.message,
        [turn.model_dump() for turn in payload.history],
        payload.context.model_dump() if payload.context else None,
        details,
    )
    return PersonaReply(persona_id=persona_id, text=text)


# Profile


@app.get("/profile", response_model=ProfileRead)
async def get_profile(
    db: Session = Depends(get_db), user_id: str = Depends(get_user_id)
) -> models.Profile:
    return profiles.get_profile(db, user_id)


@app.post("/profile", response_model=ProfileRead)
async def create_profile(
    payload: ProfileBase,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id),
) -> models.Profile:
    return profiles.create_profile(db, user_id, payload.model_dump(exclude_unset=True))


@app.patch("/profile", response_model=ProfileRead)
async def update_profile(
    payload: ProfileBase,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id),
) -> models.Profile:
    return profiles.update_profile(db, user_id, payload.model_dump(exclude_unset=True))


# Reflections


@app.post("/reflections", response_model=ReflectionRead)
async def create_reflection(
    payload: ReflectionCreate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id),
) -> models.Reflection:
    return reflections.create_reflection(db, user_id, **payload.model_dump())


@app.get("/reflections", response_model=List[ReflectionRead])
async def list_reflections(
    day: Optional[str] = Query(default=None, alias="date"),
    start: Optional[str] = None,
    end: Optional[str] = None,
    limit: int = Query(default=20, ge=1, le=200),
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id),
) -> List[models.Reflection]:
    if day:
        return reflections.get_reflections_for_date(db, user_id, day)
    if start and end:
        return reflections.get_reflections_for_period(db, user_id, start, end)
    return reflections.get_recent_reflections(db, user_id, limit=limit)


# Media routes are registered before the id routes so "media" is never read as an id
@app.post("/reflections/media", response_model=MediaUpload)
async def upload_reflection_media(
    file: UploadFile = File(...),
    user_id: str = Depends(get_user_id),
    storage: ReflectionStorage = Depends(get_storage),
) -> MediaUpload:
    data = await file.read()
    return await storage.upload(
        user_id,
        data,
        filename=file.filename,
        content_type=file.content_type or "application/octet-stream",
    )


@app.delete("/reflections/media")
async def delete_reflection_media(
    url: str,
    user_id: str = Depends(get_user_id),
    storage: ReflectionStorage = Depends(get_storage),
) -> Dict[str, Any]:
    return {"deleted": await storage.delete(user_id, url)}


@app.patch("/reflections/{reflection_id}", response_model=ReflectionRead)
async def update_reflection(
    reflection_id: int,
    payload: ReflectionUpdate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id),
) -> models.Reflection:
    return reflections.update_reflection(
        db, user_id, reflection_id, payload.model_dump(exclude_unset=True)
    )


@app.delete("/reflections/{reflection_id}")
async def delete_reflection(
    reflection_id: int, db: Session = Depends(get_db), user_id: str = Depends(get_user_id)
) -> Dict[str, Any]:
    return {"deleted": reflections.delete_reflection(db, user_id, reflection_id)}


# Prompts


def _navigation_state(payload: PromptNavigation) -> PromptState:
    return PromptState(questions=payload.questions, current_index=payload.current_index)


@app.get("/prompts", response_model=PromptState)
async def load_prompts(
    user_id: str = Depends(get_user_id),
    rotation: PromptRotation = Depends(get_prompt_rotation),
) -> PromptState:
    return await rotation.load_prompts(user_id)


@app.post("/prompts/next", response_model=PromptState)
async def next_prompt(
    payload: PromptNavigation,
    user_id: str = Depends(get_user_id),
    rotation: PromptRotation = Depends(get_prompt_rotation),
) -> PromptState:
    return rotation.next_prompt(user_id, _navigation_state(payload))


@app.post("/prompts/previous", response_model=PromptState)
async def previous_prompt(
    payload: PromptNavigation,
    user_id: str = Depends(get_user_id),
    rotation: PromptRotation = Depends(get_prompt_rotation),
) -> PromptState:
    return rotation.previous_prompt(user_id, _navigation_state(payload))


@app.post("/prompts/refresh", response_model=PromptState)
async def refresh_prompt(
    payload: PromptNavigation,
    user_id: str = Depends(get_user_id),
    rotation: PromptRotation = Depends(get_prompt_rotation),
) -> PromptState:
    return await rotation.refresh_current_prompt(user_id, _navigation_state(payload))


# Analysis


@app.post("/analysis/image", response_model=ImageAnalysis)
async def analyze_image(
    request: Request,
    user_id: str = Depends(get_user_id),
    analyzer: MoodAnalyzer = Depends(get_mood_analyzer),
) -> ImageAnalysis:
    """Accept a multipart ``file`` upload or a JSON ``{"image_url": ...}`` body."""
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("multipart/form-data"):
        form = await request.form()
        upload = form.get("file")
        if upload is None or isinstance(upload, str):
            raise HTTPException(status_code=400, detail="Missing image file")
        image = await upload.read()
        mime_type = upload.content_type or "image/jpeg"
    else:
        try:
            body = ImageUrlRequest.model_validate(await request.json())
        except (ValidationError, ValueError):
            raise HTTPException(status_code=400, detail="Expected an image_url or a file upload")
        image, mime_type = await fetch_image(body.image_url)

    return await analyzer.analyze_image(image, mime_type)


@app.post("/analysis/mood", response_model=Optional[MoodAnalysis])
async def analyze_mood(
    payload: TextRequest,
    user_id: str = Depends(get_user_id),
    analyzer: MoodAnalyzer = Depends(get_mood_analyzer),
) -> Optional[MoodAnalysis]:
    try:
        return await analyzer.analyze_mood_text(payload.text)
    except ThrivelogError as exc:
        logger.info("Mood analysis unavailable: %s", exc)
        return None


@app.post("/analysis/tags", response_model=List[str])
async def suggest_mood_tags(
    payload: TextRequest,
    user_id: str = Depends(get_user_id),
    analyzer: MoodAnalyzer = Depends(get_mood_analyzer),
) -> List[str]:
    return await analyzer.generate_mood_tags(payload.text)


@app.post("/analysis/tags/merge", response_model=TagMergeResponse)
async def merge_mood_tags(payload: TagMergeRequest) -> TagMergeResponse:
    selection = MoodTagSelection.from_state(payload.selected, payload.sources)
    if payload.clear_image:
        selection.clear_image_tags()
    selection.record_text_tags(payload.text_tags)
    selection.merge_image_tags(payload.image_tags)
    return TagMergeResponse(selected=selection.selected, sources=selection.sources)


# Insights and media


@app.get("/insights/digest", response_model=WeeklyDigest)
async def weekly_digest(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id),
    groq: GroqClient = Depends(get_groq),
    limiters: ProviderRateLimiters = Depends(get_rate_limiters),
) -> WeeklyDigest:
    return await generate_weekly_digest(db, user_id, groq, limiters.get("groq"))


@app.post("/art", response_model=MoodArt)
async def create_mood_art(
    payload: MoodArtRequest,
    user_id: str = Depends(get_user_id),
    fal: FalClient = Depends(get_fal),
) -> MoodArt:
    return await generate_mood_art(fal, payload.mood, payload.theme, payload.postcard_text)


@app.post("/transcriptions", response_model=Transcription)
async def create_transcription(
    file: UploadFile = File(...),
    language: str = Form(default="en"),
    user_id: str = Depends(get_user_id),
    openai: OpenAIClient = Depends(get_openai),
) -> Transcription:
    audio = await file.read()
    return await transcribe_and_translate(
        openai,
        audio,
        target_language=language,
        filename=file.filename or "recording.m4a",
        content_type=file.content_type or "audio/m4a",
    )


@app.post("/translate", response_model=TranslateResponse)
async def translate_text(
    payload: TranslateRequest,
    service: TranslationService = Depends(get_translation_service),
) -> TranslateResponse:
    text = await service.translate(payload.text, payload.language, payload.context)
    return TranslateResponse(text=text, language=payload.language)


@app.get("/food-groups", response_model=FoodGroup)
async def lookup_food_group(
    food: str = Query(..., min_length=1),
    lookup: FoodGroupLookup = Depends(get_food_group_lookup),
) -> FoodGroup:
    return FoodGroup(food=food, group=await lookup.lookup(food))


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("thrivelog.app:app", host="0.0.0.0", port=8000, reload=True)
