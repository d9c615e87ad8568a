import pytest

from conftest import at
from studio.errors import NotFoundError, ValidationError
from studio.services import forms

NOW = at("2025-03-10 09:00")

WELCOME = {"fitness_goals": "Get stronger", "injuries": "Left knee"}
PARQ = {"q2_chest_pain": False, "q5_bone_joint": True, "declaration": True}


def test_submit_welcome(db, make_client):
    client = make_client()
    form = forms.submit_form(db, client, "welcome", WELCOME, now=NOW)

    assert forms.load_answers(form) == WELCOME
    assert form.completed_at == NOW.isoformat()
    assert form.reviewed_at is None


def test_parq_needs_declaration(db, make_client):
    client = make_client()
    with pytest.raises(ValidationError, match="declaration"):
        forms.submit_form(db, client, "parq", {**PARQ, "declaration": False}, now=NOW)
    assert forms.client_forms(db, client.id) == {}


def test_unknown_form_type(db, make_client):
    with pytest.raises(ValidationError):
        forms.submit_form(db, make_client(), "medical", {}, now=NOW)


def test_parq_flags_yes_answers():
    assert forms.parq_flags(PARQ) == ["q5_bone_joint"]
    assert forms.parq_flags({"declaration": True}) == []


def test_resubmitting_replaces_answers_and_clears_review(db, make_client):
    client = make_client()
    form = forms.submit_form(db, client, "welcome", WELCOME, now=NOW)
    form_id = form.id

    reviewed = forms.mark_reviewed(db, client.id, "welcome", now=NOW)
    assert reviewed.reviewed_at == NOW.isoformat()

    again = forms.submit_form(db, client, "welcome", {"fitness_goals": "Run 10k"}, now=at("2025-03-11 09:00"))
    assert again.id == form_id
    assert again.reviewed_at is None
    assert forms.load_answers(again) == {"fitness_goals": "Run 10k"}


def test_review_needs_a_submission(db, make_client):
    with pytest.raises(NotFoundError):
        forms.mark_reviewed(db, make_client().id, "parq", now=NOW)


def test_list_submissions_by_status(db, make_client):
    done = make_client(name="Cara Done")
    half = make_client(name="Ben Half")
    make_client(name="Ava None")
    forms.submit_form(db, done, "welcome", WELCOME, now=NOW)
    forms.submit_form(db, done, "parq", PARQ, now=NOW)
    forms.submit_form(db, half, "welcome", WELCOME, now=NOW)

    everyone = forms.list_submissions(db)
    assert [s.name for s in everyone] == ["Ava None", "Ben Half", "Cara Done"]
    assert [s.status for s in everyone] == ["pending", "partial", "completed"]
    assert sorted(everyone[2].forms) == ["parq", "welcome"]

    assert [s.name for s in forms.list_submissions(db, "completed")] == ["Cara Done"]
    assert [s.name for s in forms.list_submissions(db, "partial")] == ["Ben Half"]
    assert [s.name for s in forms.list_submissions(db, "pending")] == ["Ava None"]
    assert [s.name for s in forms.list_submissions(db, search="ben")] == ["Ben Half"]

    with pytest.raises(ValidationError):
        forms.list_submissions(db, "bogus")
