"""
API routes for Spelling Word Collector sync

REST endpoints for families, profiles, word lists, sessions and streaks.
Mutating admin endpoints take the parent PIN in the X-Family-Pin header.
"""

from fastapi import APIRouter, Header, HTTPException
from typing import Any, Awaitable, Callable, Dict, Optional
import logging

from src.models import (
    EmailRequest,
    FamilyCreate,
    FamilyJoin,
    PinRequest,
    ProfileCreate,
    SentenceRequest,
    SessionCreate,
    WordListCreate,
    WordListUpdate,
)
from src.services.access_gate import AccessGate
from src.services.clock import Clock
from src.services.errors import (
    IncorrectPinError,
    InvalidInputError,
    SpellingSyncError,
    StoreUnavailableError,
)
from src.services.family_service import FamilyAccountService
from src.services.profile_service import ProfileStore
from src.services.session_service import SessionRecorder, build_session
from src.services.store import DocumentStore
from src.services.word_list_service import WordListStore

# Logger for API routes
logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["families"])

PIN_HEADER = "X-Family-Pin"

# Global services (will be set by main app)
_store: DocumentStore = None
_families: FamilyAccountService = None
_sessions: SessionRecorder = None
_sentences = None
_clock: Clock = None


def set_services(store: DocumentStore, families: FamilyAccountService, sessions: SessionRecorder,
                 sentences=None, clock: Optional[Clock] = None):
    """Set the global service instances"""
    global _store, _families, _sessions, _sentences, _clock
    _store = store
    _families = families
    _sessions = sessions
    _sentences = sentences
    _clock = clock or Clock()


def _require_services():
    if _families is None or _store is None:
        raise HTTPException(status_code=503, detail="Service not initialized")


def _http_error(e: Exception) -> HTTPException:
    """Map a service error to a short HTTP error."""
    if isinstance(e, InvalidInputError):
        return HTTPException(status_code=400, detail=e.user_message)
    if isinstance(e, IncorrectPinError):
        return HTTPException(status_code=403, detail=e.user_message)
    if isinstance(e, StoreUnavailableError):
        logger.error(f"Store unavailable: {e}")
        return HTTPException(status_code=503, detail=e.user_message)
    if isinstance(e, SpellingSyncError):
        logger.error(f"{type(e).__name__}: {e}")
        return HTTPException(status_code=500, detail=e.user_message)
    logger.error(f"Unexpected error: {type(e).__name__}: {e}", exc_info=True)
    return HTTPException(status_code=500, detail="Something went wrong. Please try again.")


async def _require_family(family_id: str):
    family = await _families.get_family(family_id)
    if not family:
        raise HTTPException(status_code=404, detail="Family not found")
    return family


async def _guarded(family_id: str, pin: Optional[str], action: Callable[[], Awaitable[Any]]) -> Any:
    """
    Run a mutating action through the family's PIN gate.

    The gate lives for this request only: the PIN has to come with every
    gated call. No PIN while the family has one means 403.
    """
    gate = AccessGate(_families, family_id)
    if pin:
        await gate.submit_pin(pin)
    result = await gate.require(action)
    if gate.has_pending:
        gate.cancel()
        raise HTTPException(status_code=403, detail="PIN required")
    return result


# ============================================================================
# Families
# ============================================================================

@router.post("/families", response_model=Dict[str, Any])
async def create_family(request: FamilyCreate):
    """
    Create a family.

    Request body:
    {
        "email": "parent@example.com"   (optional, receives the join code)
    }

    Response:
    {
        "familyId": "...",
        "joinCode": "Q7K2M9"
    }
    """
    _require_services()
    try:
        family_id, join_code = await _families.create_family(request.email)
        return {"familyId": family_id, "joinCode": join_code}
    except HTTPException:
        raise
    except Exception as e:
        raise _http_error(e)


@router.post("/families/join", response_model=Dict[str, Any])
async def join_family(request: FamilyJoin):
    """Look up a family by join code (case-insensitive)."""
    _require_services()
    try:
        family_id = await _families.join_family(request.code)
    except Exception as e:
        raise _http_error(e)

    if family_id is None:
        raise HTTPException(status_code=404, detail="No family uses that code")
    return {"familyId": family_id}


@router.get("/families/{family_id}", response_model=Dict[str, Any])
async def get_family(family_id: str):
    _require_services()
    try:
        family = await _require_family(family_id)
        return family.public_view()
    except HTTPException:
        raise
    except Exception as e:
        raise _http_error(e)


# ============================================================================
# Contact Emails
# ============================================================================

@router.get("/families/{family_id}/emails", response_model=Dict[str, Any])
async def get_family_emails(family_id: str):
    """Contact addresses plus the last join-code email status."""
    _require_services()
    try:
        status = await _families.get_email_delivery_status(family_id)
    except Exception as e:
        raise _http_error(e)

    if status is None:
        raise HTTPException(status_code=404, detail="Family not found")
    return status


@router.post("/families/{family_id}/emails", response_model=Dict[str, Any])
async def add_family_email(
    family_id: str,
    request: EmailRequest,
    x_family_pin: Optional[str] = Header(default=None, alias=PIN_HEADER)
):
    _require_services()
    try:
        await _require_family(family_id)
        await _guarded(family_id, x_family_pin, lambda: _families.add_family_email(family_id, request.email))
        return {"success": True, "emails": await _families.get_family_emails(family_id)}
    except HTTPException:
        raise
    except Exception as e:
        raise _http_error(e)


@router.delete("/families/{family_id}/emails", response_model=Dict[str, Any])
async def remove_family_email(
    family_id: str,
    email: str,
    x_family_pin: Optional[str] = Header(default=None, alias=PIN_HEADER)
):
    """Remove a contact address (?email=...)."""
    _require_services()
    try:
        await _require_family(family_id)
        await _guarded(family_id, x_family_pin, lambda: _families.remove_family_email(family_id, email))
        return {"success": True, "emails": await _families.get_family_emails(family_id)}
    except HTTPException:
        raise
    except Exception as e:
        raise _http_error(e)


@router.post("/families/{family_id}/emails/resend", response_model=Dict[str, Any])
async def resend_join_code(family_id: str, request: EmailRequest):
    """
    Send the join code again.

    Response:
    {
        "success": true,
        "email": "parent@example.com"
    }
    """
    _require_services()
    try:
        result = await _families.resend_join_code(family_id, request.email)
    except Exception as e:
        raise _http_error(e)

    if result is None:
        raise HTTPException(status_code=404, detail="Family not found")
    return result


# ============================================================================
# Parent PIN
# ============================================================================

@router.put("/families/{family_id}/pin", response_model=Dict[str, Any])
async def set_pin(
    family_id: str,
    request: PinRequest,
    x_family_pin: Optional[str] = Header(default=None, alias=PIN_HEADER)
):
    """Set or change the PIN. Changing an existing PIN needs the current one."""
    _require_services()
    try:
        await _require_family(family_id)
        await _guarded(family_id, x_family_pin, lambda: _families.set_pin(family_id, request.pin))
        return {"success": True, "hasPin": True}
    except HTTPException:
        raise
    except Exception as e:
        raise _http_error(e)


@router.delete("/families/{family_id}/pin", response_model=Dict[str, Any])
async def clear_pin(
    family_id: str,
    x_family_pin: Optional[str] = Header(default=None, alias=PIN_HEADER)
):
    _require_services()
    try:
        await _require_family(family_id)
        await _guarded(family_id, x_family_pin, lambda: _families.clear_pin(family_id))
        return {"success": True, "hasPin": False}
    except HTTPException:
        raise
    except Exception as e:
        raise _http_error(e)


@router.post("/families/{family_id}/pin/verify", response_model=Dict[str, Any])
async def verify_pin(family_id: str, request: PinRequest):
    _require_services()
    try:
        await _require_family(family_id)
        return {"valid": await _families.verify_pin(family_id, request.pin)}
    except HTTPException:
        raise
    except Exception as e:
        raise _http_error(e)


# ============================================================================
# Profiles
# ============================================================================

@router.get("/families/{family_id}/profiles", response_model=Dict[str, Any])
async def list_profiles(family_id: str):
    _require_services()
    try:
        await _require_family(family_id)
        profiles = await ProfileStore(_store, family_id, clock=_clock).list()
        return {"profiles": [p.model_dump(mode="json", by_alias=True) for p in profiles]}
    except HTTPException:
        raise
    except Exception as e:
        raise _http_error(e)


@router.post("/families/{family_id}/profiles", response_model=Dict[str, Any])
async def create_profile(
    family_id: str,
    request: ProfileCreate,
    x_family_pin: Optional[str] = Header(default=None, alias=PIN_HEADER)
):
    _require_services()
    try:
        await _require_family(family_id)
        profiles = ProfileStore(_store, family_id, clock=_clock)
        profile = await _guarded(family_id, x_family_pin, lambda: profiles.create(request.name))
        return {"success": True, "profile": profile.model_dump(mode="json", by_alias=True)}
    except HTTPException:
        raise
    except Exception as e:
        raise _http_error(e)


@router.delete("/families/{family_id}/profiles/{profile_id}", response_model=Dict[str, Any])
async def delete_profile(
    family_id: str,
    profile_id: str,
    x_family_pin: Optional[str] = Header(default=None, alias=PIN_HEADER)
):
    _require_services()
    try:
        await _require_family(family_id)
        profiles = ProfileStore(_store, family_id, clock=_clock)
        await _guarded(family_id, x_family_pin, lambda: profiles.delete(profile_id))
        return {"success": True}
    except HTTPException:
        raise
    except Exception as e:
        raise _http_error(e)


@router.get("/families/{family_id}/profiles/{profile_id}/streak", response_model=Dict[str, Any])
async def get_streak(family_id: str, profile_id: str):
    """Current streak for display (0 once it has lapsed)."""
    _require_services()
    try:
        await _require_family(family_id)
        streak = await _sessions.streaks(family_id).read(profile_id)
        return {"profileId": profile_id, "streak": streak}
    except HTTPException:
        raise
    except Exception as e:
        raise _http_error(e)


# ============================================================================
# Word Lists
# ============================================================================

@router.get("/families/{family_id}/word-lists", response_model=Dict[str, Any])
async def list_word_lists(family_id: str):
    _require_services()
    try:
        await _require_family(family_id)
        lists = await WordListStore(_store, family_id, clock=_clock).load()
        return {"wordLists": [wl.model_dump(mode="json", by_alias=True) for wl in lists]}
    except HTTPException:
        raise
    except Exception as e:
        raise _http_error(e)


@router.post("/families/{family_id}/word-lists", response_model=Dict[str, Any])
async def create_word_list(
    family_id: str,
    request: WordListCreate,
    x_family_pin: Optional[str] = Header(default=None, alias=PIN_HEADER)
):
    """
    Create a word list.

    Request body:
    {
        "name": "Week 3",
        "words": ["because", "friend"],
        "sentences": {"friend": "My friend likes to read."}
    }
    """
    _require_services()
    try:
        await _require_family(family_id)
        lists = WordListStore(_store, family_id, clock=_clock)
        word_list = await _guarded(
            family_id, x_family_pin,
            lambda: lists.create(request.name, request.words, request.sentences)
        )
        return {"success": True, "wordList": word_list.model_dump(mode="json", by_alias=True)}
    except HTTPException:
        raise
    except Exception as e:
        raise _http_error(e)


@router.patch("/families/{family_id}/word-lists/{list_id}", response_model=Dict[str, Any])
async def update_word_list(
    family_id: str,
    list_id: str,
    request: WordListUpdate,
    x_family_pin: Optional[str] = Header(default=None, alias=PIN_HEADER)
):
    _require_services()
    try:
        await _require_family(family_id)
        lists = WordListStore(_store, family_id, clock=_clock)
        updates = {k: v for k, v in request.model_dump().items() if v is not None}
        word_list = await _guarded(family_id, x_family_pin, lambda: lists.update(list_id, updates))
        if word_list is None:
            raise HTTPException(status_code=404, detail="Word list not found")
        return {"success": True, "wordList": word_list.model_dump(mode="json", by_alias=True)}
    except HTTPException:
        raise
    except Exception as e:
        raise _http_error(e)


@router.delete("/families/{family_id}/word-lists/{list_id}", response_model=Dict[str, Any])
async def delete_word_list(
    family_id: str,
    list_id: str,
    x_family_pin: Optional[str] = Header(default=None, alias=PIN_HEADER)
):
    _require_services()
    try:
        await _require_family(family_id)
        lists = WordListStore(_store, family_id, clock=_clock)
        await _guarded(family_id, x_family_pin, lambda: lists.delete(list_id))
        return {"success": True}
    except HTTPException:
        raise
    except Exception as e:
        raise _http_error(e)


# ============================================================================
# Sessions
# ============================================================================

@router.get("/families/{family_id}/sessions", response_model=Dict[str, Any])
async def list_sessions(family_id: str, profileId: Optional[str] = None):
    """Session history, newest first (?profileId= for one profile)."""
    _require_services()
    try:
        await _require_family(family_id)
        sessions = await _sessions.load(family_id, profile_id=profileId)
        return {"sessions": [s.model_dump(mode="json", by_alias=True) for s in sessions]}
    except HTTPException:
        raise
    except Exception as e:
        raise _http_error(e)


@router.post("/families/{family_id}/sessions", response_model=Dict[str, Any])
async def record_session(family_id: str, request: SessionCreate):
    """
    Record a finished practice session. Not PIN-gated.

    Response:
    {
        "success": true,
        "session": {...},
        "streak": 3       (null for anonymous practice)
    }
    """
    _require_services()
    try:
        await _require_family(family_id)
        session = build_session(**request.model_dump(exclude={"profile_id"}))
        stored = await _sessions.record(family_id, session, request.profile_id)
        streak = None
        if stored.profile_id:
            streak = await _sessions.streaks(family_id).read(stored.profile_id)
        return {
            "success": True,
            "session": stored.model_dump(mode="json", by_alias=True),
            "streak": streak,
        }
    except HTTPException:
        raise
    except Exception as e:
        raise _http_error(e)


# ============================================================================
# Example Sentences
# ============================================================================

@router.post("/sentences", response_model=Dict[str, Any])
async def generate_sentences(request: SentenceRequest):
    """
    Example sentences for a small batch of words.

    Request body:
    {
        "words": ["because", "friend"]
    }
    """
    if _sentences is None or not _sentences.available:
        raise HTTPException(status_code=503, detail="Sentence generation is not configured")
    try:
        return {"sentences": await _sentences.generate(request.words)}
    except Exception as e:
        raise _http_error(e)


@router.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "service": "Spelling Word Collector",
        "store_initialized": _store is not None,
        "sentences_available": bool(_sentences and _sentences.available),
    }
