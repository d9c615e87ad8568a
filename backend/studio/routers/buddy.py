# backend/studio/routers/buddy.py
"""
Buddy coach endpoints.

/buddy/onboarding and /buddy/plan stream Server-Sent Events; /buddy/chat
returns one JSON reply.
"""

from fastapi import APIRouter, Body, Depends, HTTPException, status
from fastapi.responses import StreamingResponse

from ..auth import Identity, require_identity
from ..services.buddy import BuddyUnavailableError, chat_reply, stream_onboarding, stream_plan

router = APIRouter(prefix="/buddy", tags=["buddy"])

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "X-Accel-Buffering": "no",
}


def _messages(payload: dict) -> list[dict]:
    messages = payload.get("messages")
    if not isinstance(messages, list):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="messages array required")
    return messages


def _profile(payload: dict) -> dict:
    profile = payload.get("profile")
    if not isinstance(profile, dict):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="profile required")
    return profile


@router.post("/onboarding")
def onboarding(
    payload: dict = Body(...),
    _: Identity = Depends(require_identity),
):
    messages = _messages(payload)
    return StreamingResponse(
        stream_onboarding(messages, payload.get("clientName")),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


@router.post("/plan")
def plan(
    payload: dict = Body(...),
    _: Identity = Depends(require_identity),
):
    profile = _profile(payload)
    return StreamingResponse(
        stream_plan(profile, payload.get("exerciseLibrary")),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


@router.post("/chat")
def chat(
    payload: dict = Body(...),
    _: Identity = Depends(require_identity),
):
    messages = _messages(payload)
    profile = _profile(payload)
    try:
        reply = chat_reply(messages, profile, payload.get("exerciseNames"))
    except BuddyUnavailableError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
    return {"reply": reply}
