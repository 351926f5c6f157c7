"""FastAPI server for Hidrazy usage and cost control."""

from __future__ import annotations

from typing import Optional, Dict, Any, Iterator, List

from fastapi import FastAPI, HTTPException, Header, Depends
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict, Field

from hidrazy import (
    CostMonitor,
    LedgerUnavailableError,
    ModelContext,
    SQLiteLedger,
    SpeechPreferences,
    SpeechProviderError,
    SpeechSynthesizer,
    TutorChat,
    TutorProviderError,
    speak_for_user,
)
from hidrazy.auth import AuthenticationError, user_id_from_header
from hidrazy.config import get_db_path, get_jwt_secret


def get_monitor() -> Iterator[CostMonitor]:
    ledger = SQLiteLedger(db_path=get_db_path())
    try:
        yield CostMonitor(ledger)
    finally:
        ledger.close()


def get_synthesizer() -> SpeechSynthesizer:
    return SpeechSynthesizer()


def get_tutor(monitor: CostMonitor = Depends(get_monitor)) -> TutorChat:
    return TutorChat(monitor)


def current_user(authorization: Optional[str] = Header(default=None)) -> str:
    try:
        return user_id_from_header(authorization, get_jwt_secret())
    except AuthenticationError as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc


app = FastAPI(title="Hidrazy Usage API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class LimitCheckRequest(CamelModel):
    request_type: str = Field("chat", alias="requestType")


class SpeechRequest(CamelModel):
    text: Optional[str] = None
    voice: Optional[str] = None
    model: Optional[str] = None
    message_type: Optional[str] = Field(None, alias="messageType")
    user_preferences: Optional[Dict[str, Any]] = Field(None, alias="userPreferences")


class ConversationRequest(CamelModel):
    user_message: str = Field(..., min_length=1, alias="userMessage")
    conversation_type: str = Field("free-chat", alias="conversationType")
    user_level: str = Field("beginner", alias="userLevel")
    conversation_history: List[Dict[str, str]] = Field(default_factory=list, alias="conversationHistory")
    wants_detailed: bool = Field(False, alias="wantsDetailed")


@app.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.post("/usage")
def get_usage(
    user_id: str = Depends(current_user),
    monitor: CostMonitor = Depends(get_monitor),
) -> Dict[str, Any]:
    try:
        report = monitor.get_usage(user_id)
    except LedgerUnavailableError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    return report.to_dict()


@app.post("/usage/check")
def check_limits(
    req: LimitCheckRequest,
    user_id: str = Depends(current_user),
    monitor: CostMonitor = Depends(get_monitor),
) -> Dict[str, Any]:
    return monitor.check_limits(user_id, req.request_type).to_dict()


@app.post("/text-to-speech")
def text_to_speech(
    req: SpeechRequest,
    user_id: str = Depends(current_user),
    monitor: CostMonitor = Depends(get_monitor),
    synthesizer: SpeechSynthesizer = Depends(get_synthesizer),
) -> Dict[str, Any]:
    if not req.text:
        raise HTTPException(status_code=400, detail="Text is required")

    try:
        outcome = speak_for_user(
            monitor,
            synthesizer,
            user_id,
            req.text,
            message_type=req.message_type,
            preferences=SpeechPreferences.from_dict(req.user_preferences),
            voice=req.voice,
            model=req.model,
        )
    except SpeechProviderError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return outcome.to_dict()


@app.post("/conversation")
def conversation(
    req: ConversationRequest,
    user_id: str = Depends(current_user),
    tutor: TutorChat = Depends(get_tutor),
) -> Dict[str, Any]:
    context = ModelContext(
        user_message=req.user_message,
        conversation_type=req.conversation_type,
        user_level=req.user_level,
        wants_detailed=req.wants_detailed,
    )
    try:
        reply = tutor.reply(user_id, context, history=req.conversation_history)
    except TutorProviderError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return reply.to_dict()
