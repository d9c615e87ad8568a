# backend/studio/services/buddy.py
"""
Buddy, the chat coach.

Completions are streamed to the browser as Server-Sent Events:

    data: {"t": "<chunk>"}            one per streamed token batch
    data: {"done": true, ...}         once, after the stream ends

Structured output is embedded in the completion text between markers and
cut out once the stream has finished:

    |||PROFILE|||{...}|||END|||        onboarding profile
    |||PLAN|||{...}|||END_PLAN|||      monthly training plan
"""

import json
import logging
from collections.abc import Iterable, Iterator
from datetime import date
from typing import Any, Optional

from openai import OpenAI

from ..config import settings

logger = logging.getLogger(__name__)

PROFILE_MARKERS = ("|||PROFILE|||", "|||END|||")
PLAN_MARKERS = ("|||PLAN|||", "|||END_PLAN|||")

BUDDY_ERROR = "Failed to get a response from Buddy"
PLAN_ERROR = "Failed to generate plan"
PLAN_INVALID = "Plan structure was invalid, try again"


class BuddyUnavailableError(Exception):
    """The completion API failed."""


def get_client() -> OpenAI:
    return OpenAI(api_key=settings.openai_api_key)


def extract_marked_payload(
    text: str,
    start_marker: str,
    end_marker: str,
) -> tuple[str, Optional[Any], bool]:
    """
    Split a completion into (reply, payload, found).

    found is True when both markers are present. When the JSON between them
    doesn't parse, payload is None and the reply is the text with the markers
    and the broken JSON removed.
    """
    start = text.find(start_marker)
    end = text.find(end_marker)
    if start == -1 or end == -1:
        return text, None, False

    raw = text[start + len(start_marker):end].strip()
    reply = text[:start].strip()
    try:
        return reply, json.loads(raw), True
    except json.JSONDecodeError:
        logger.warning("Buddy returned markers with invalid JSON")
        cleaned = (
            text.replace(start_marker, "", 1)
            .replace(end_marker, "", 1)
            .replace(raw, "", 1)
            .strip()
        )
        return cleaned, None, True


def sse(data: dict) -> str:
    return f"data: {json.dumps(data)}\n\n"


# ──────────────────────────────────────────────────────────────────────────────
# Prompts
# ──────────────────────────────────────────────────────────────────────────────

def _age(dob: str) -> Optional[int]:
    try:
        born = date.fromisoformat(dob)
    except (TypeError, ValueError):
        return None
    today = date.today()
    return today.year - born.year - ((today.month, today.day) < (born.month, born.day))


def _profile_lines(profile: dict) -> str:
    age = _age(profile.get("dob") or "")
    lines = [f"- Name: {profile.get('name') or 'Client'}"]
    if age:
        lines.append(f"- Age: {age}")
    if profile.get("gender"):
        lines.append(f"- Gender: {profile['gender']}")
    lines += [
        f"- Goals: {', '.join(profile.get('goals') or []) or 'general fitness'}",
        f"- Experience: {profile.get('experience') or 'beginner'}",
        f"- Injuries/conditions: {profile.get('injuries') or 'none reported'}",
        f"- Activity level: {profile.get('activityLevel') or 'not specified'}",
        f"- Availability: {profile.get('availability') or 'not specified'}",
        f"- Diet: {profile.get('dietaryInfo') or 'not specified'}",
    ]
    return "\n".join(lines)


def onboarding_prompt(client_name: str) -> str:
    start, end = PROFILE_MARKERS
    return (
        "You are Buddy, the fitness coach inside Core Buddy by Mind Core Fitness. "
        f"This is your first conversation with {client_name}. Get to know them "
        "one or two topics at a time: goals, experience, date of birth, gender, "
        "injuries, activity level, exercise history, sleep, stress, nutrition "
        "and training availability.\n"
        "When you know enough, summarise it and ask them to confirm. Only after "
        "they confirm, end your message with the profile in exactly this form:\n"
        f'{start}{{"dob":"","gender":"","goals":[],"experience":"","injuries":"",'
        '"activityLevel":"","exerciseHistory":"","sleepHours":"","stressLevel":"",'
        f'"dietaryInfo":"","availability":"","additionalInfo":""}}{end}'
    )


def chat_prompt(profile: dict, exercise_names: list[str]) -> str:
    prompt = (
        "You are Buddy, the fitness coach inside Core Buddy by Mind Core Fitness. "
        "Answer the client's questions about training and nutrition, briefly and "
        "warmly.\n\nClient profile:\n" + _profile_lines(profile)
    )
    if exercise_names:
        prompt += "\n\nOnly suggest exercises from this library: " + ", ".join(exercise_names)
    return prompt


def plan_prompt(profile: dict, exercise_library: list) -> str:
    start, end = PLAN_MARKERS
    names = [e.get("name") if isinstance(e, dict) else str(e) for e in exercise_library or []]
    prompt = (
        "You are Buddy, the fitness coach inside Core Buddy by Mind Core Fitness. "
        "Write a personalised four-week training plan for this client.\n\n"
        + _profile_lines(profile)
    )
    if names:
        prompt += "\n\nUse only these exercises: " + ", ".join(n for n in names if n)
    prompt += (
        "\n\nStart with a short friendly message, then output the plan as JSON "
        f'between {start} and {end}: {{"name": "...", "weeks": [{{"week": 1, '
        '"days": [{"day": "...", "focus": "...", "exercises": [{"name": "...", '
        f'"sets": 3, "reps": "8-12"}}]}}]}}]}}. Nothing after {end}.'
    )
    return prompt


# ──────────────────────────────────────────────────────────────────────────────
# Completions
# ──────────────────────────────────────────────────────────────────────────────

def _stream_chunks(
    client: OpenAI,
    messages: list[dict],
    temperature: float,
    max_tokens: int,
) -> Iterator[str]:
    stream = client.chat.completions.create(
        model=settings.openai_model,
        messages=messages,
        temperature=temperature,
        max_tokens=max_tokens,
        stream=True,
    )
    for chunk in stream:
        if not chunk.choices:
            continue
        content = chunk.choices[0].delta.content
        if content:
            yield content


def stream_onboarding(
    messages: list[dict],
    client_name: Optional[str] = None,
    client: Optional[OpenAI] = None,
) -> Iterator[str]:
    """SSE lines for the onboarding conversation."""
    client = client or get_client()
    full = [{"role": "system", "content": onboarding_prompt(client_name or "there")}, *messages]

    text = ""
    try:
        for content in _stream_chunks(client, full, temperature=0.7, max_tokens=1024):
            text += content
            yield sse({"t": content})
    except Exception as e:
        logger.error(f"Buddy onboarding stream failed: {e}")
        yield sse({"done": True, "error": BUDDY_ERROR})
        return

    reply, profile, _ = extract_marked_payload(text, *PROFILE_MARKERS)
    final = {"done": True, "reply": reply}
    if profile is not None:
        final["profileData"] = profile
        logger.info("Buddy onboarding produced a profile")
    yield sse(final)


def stream_plan(
    profile: dict,
    exercise_library: Optional[list] = None,
    client: Optional[OpenAI] = None,
) -> Iterator[str]:
    """SSE lines for plan generation."""
    client = client or get_client()
    full = [
        {"role": "system", "content": plan_prompt(profile, exercise_library or [])},
        {"role": "user", "content": "Generate my personalised monthly plan based on my profile."},
    ]

    text = ""
    try:
        for content in _stream_chunks(client, full, temperature=0.6, max_tokens=8192):
            text += content
            yield sse({"t": content})
    except Exception as e:
        logger.error(f"Buddy plan stream failed: {e}")
        yield sse({"done": True, "error": PLAN_ERROR})
        return

    reply, plan, found = extract_marked_payload(text, *PLAN_MARKERS)
    if plan is not None:
        yield sse({"done": True, "reply": reply, "plan": plan})
    elif found:
        intro = text[:text.find(PLAN_MARKERS[0])].strip()
        yield sse({"done": True, "reply": intro, "error": PLAN_INVALID})
    else:
        yield sse({"done": True, "reply": text})


def chat_reply(
    messages: Iterable[dict],
    profile: dict,
    exercise_names: Optional[list[str]] = None,
    client: Optional[OpenAI] = None,
) -> str:
    """One non-streamed answer in the ongoing coach chat."""
    client = client or get_client()
    full = [{"role": "system", "content": chat_prompt(profile, exercise_names or [])}, *messages]
    try:
        response = client.chat.completions.create(
            model=settings.openai_model,
            messages=full,
            temperature=0.7,
            max_tokens=2048,
        )
    except Exception as e:
        logger.error(f"Buddy chat failed: {e}")
        raise BuddyUnavailableError(BUDDY_ERROR)

    if not response.choices:
        return ""
    return response.choices[0].message.content or ""
