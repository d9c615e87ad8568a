import json
from types import SimpleNamespace
from unittest.mock import Mock

import pytest

from studio.services import buddy


def chunk(content):
    return SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=content))])


def streaming_client(*pieces):
    client = Mock()
    client.chat.completions.create.return_value = iter(
        [chunk(p) for p in pieces] + [SimpleNamespace(choices=[])]
    )
    return client


def events(lines):
    return [json.loads(line[len("data: "):]) for line in lines]


# ──────────────────────────────────────────────────────────────────────────────
# Marker extraction
# ──────────────────────────────────────────────────────────────────────────────

def test_extract_profile():
    text = 'Great, all set!\n|||PROFILE|||{"goals": ["strength"]}|||END|||'
    reply, payload, found = buddy.extract_marked_payload(text, *buddy.PROFILE_MARKERS)

    assert reply == "Great, all set!"
    assert payload == {"goals": ["strength"]}
    assert found is True


def test_extract_without_markers():
    reply, payload, found = buddy.extract_marked_payload("Tell me more.", *buddy.PROFILE_MARKERS)
    assert (reply, payload, found) == ("Tell me more.", None, False)


def test_extract_invalid_json_falls_back_to_text():
    text = "Here it is |||PLAN|||{not json|||END_PLAN||| enjoy"
    reply, payload, found = buddy.extract_marked_payload(text, *buddy.PLAN_MARKERS)

    assert payload is None
    assert found is True
    assert "|||" not in reply
    assert "{not json" not in reply
    assert reply.startswith("Here it is")


def test_sse_format():
    assert buddy.sse({"t": "hi"}) == 'data: {"t": "hi"}\n\n'


# ──────────────────────────────────────────────────────────────────────────────
# Streams
# ──────────────────────────────────────────────────────────────────────────────

def test_onboarding_stream_ends_with_profile():
    client = streaming_client("Thanks! ", '|||PROFILE|||{"experience": ', '"beginner"}|||END|||')

    result = events(buddy.stream_onboarding([{"role": "user", "content": "yes"}], "Alex", client))

    assert [e["t"] for e in result[:-1]] == ["Thanks! ", '|||PROFILE|||{"experience": ', '"beginner"}|||END|||']
    assert result[-1] == {"done": True, "reply": "Thanks!", "profileData": {"experience": "beginner"}}

    messages = client.chat.completions.create.call_args.kwargs["messages"]
    assert messages[0]["role"] == "system"
    assert "Alex" in messages[0]["content"]
    assert messages[1] == {"role": "user", "content": "yes"}


def test_onboarding_stream_without_profile():
    client = streaming_client("What are your goals?")
    result = events(buddy.stream_onboarding([], None, client))
    assert result[-1] == {"done": True, "reply": "What are your goals?"}


def test_upstream_failure_ends_stream_with_error():
    client = Mock()
    client.chat.completions.create.side_effect = RuntimeError("boom")

    result = events(buddy.stream_onboarding([], "Alex", client))

    assert result == [{"done": True, "error": buddy.BUDDY_ERROR}]


def test_plan_stream_returns_plan():
    plan = {"name": "Month 1", "weeks": []}
    client = streaming_client("Here you go! ", f"|||PLAN|||{json.dumps(plan)}|||END_PLAN|||")

    result = events(buddy.stream_plan({"name": "Alex"}, [{"name": "Squat"}], client))

    assert result[-1] == {"done": True, "reply": "Here you go!", "plan": plan}
    system = client.chat.completions.create.call_args.kwargs["messages"][0]["content"]
    assert "Squat" in system


def test_plan_stream_with_broken_plan():
    client = streaming_client("Here you go! ", "|||PLAN|||{broken|||END_PLAN|||")

    result = events(buddy.stream_plan({"name": "Alex"}, None, client))

    assert result[-1] == {"done": True, "reply": "Here you go!", "error": buddy.PLAN_INVALID}


def test_chat_reply():
    client = Mock()
    client.chat.completions.create.return_value = SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content="Drink water."))]
    )

    reply = buddy.chat_reply([{"role": "user", "content": "tips?"}], {"name": "Alex"}, ["Squat"], client)

    assert reply == "Drink water."
    assert "Squat" in client.chat.completions.create.call_args.kwargs["messages"][0]["content"]


def test_chat_reply_failure():
    client = Mock()
    client.chat.completions.create.side_effect = RuntimeError("boom")
    with pytest.raises(buddy.BuddyUnavailableError):
        buddy.chat_reply([], {}, None, client)


def test_profile_lines_defaults():
    lines = buddy._profile_lines({"name": "Alex", "goals": ["fat loss", "energy"]})
    assert "- Name: Alex" in lines
    assert "- Goals: fat loss, energy" in lines
    assert "- Experience: beginner" in lines
