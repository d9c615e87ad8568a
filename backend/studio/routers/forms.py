# backend/studio/routers/forms.py
# Clients fill in the welcome form and PAR-Q; the trainer reviews them

from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ..auth import Identity, current_client, require_admin
from ..database import get_db
from ..models.tables import ClientForms as DBClientForms, Clients as DBClients
from ..schemas.forms import FormRead, FormSubmissionRead, ParqForm, WelcomeForm
from ..services.forms import (
    FORM_PARQ,
    FORM_TYPES,
    FORM_WELCOME,
    client_forms,
    list_submissions,
    load_answers,
    mark_reviewed,
    parq_flags,
    submit_form,
)

router = APIRouter(prefix="/forms", tags=["forms"])


def _read(form: DBClientForms) -> FormRead:
    answers = load_answers(form)
    return FormRead(
        form_type=form.form_type,
        answers=answers,
        completed_at=form.completed_at,
        reviewed_at=form.reviewed_at,
        flags=parq_flags(answers) if form.form_type == FORM_PARQ else [],
    )


@router.get("/me", response_model=list[FormRead])
def my_forms(
    client: DBClients = Depends(current_client),
    db: Session = Depends(get_db),
):
    forms = client_forms(db, client.id)
    return [_read(forms[t]) for t in FORM_TYPES if t in forms]


@router.put("/me/welcome", response_model=FormRead)
def submit_welcome(
    data: WelcomeForm,
    client: DBClients = Depends(current_client),
    db: Session = Depends(get_db),
):
    return _read(submit_form(db, client, FORM_WELCOME, data.model_dump()))


@router.put("/me/parq", response_model=FormRead)
def submit_parq(
    data: ParqForm,
    client: DBClients = Depends(current_client),
    db: Session = Depends(get_db),
):
    return _read(submit_form(db, client, FORM_PARQ, data.model_dump()))


@router.get("/", response_model=list[FormSubmissionRead])
def list_forms(
    status: Literal["all", "completed", "partial", "pending"] = "all",
    search: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    _: Identity = Depends(require_admin),
):
    result = []
    for summary in list_submissions(db, status, search):
        welcome = summary.forms.get(FORM_WELCOME)
        parq = summary.forms.get(FORM_PARQ)
        result.append(FormSubmissionRead(
            client_id=summary.client_id,
            name=summary.name,
            email=summary.email,
            status=summary.status,
            welcome=_read(welcome) if welcome else None,
            parq=_read(parq) if parq else None,
        ))
    return result


@router.post("/{client_id}/{form_type}/review", response_model=FormRead)
def review_form(
    client_id: int,
    form_type: str,
    db: Session = Depends(get_db),
    _: Identity = Depends(require_admin),
):
    if form_type not in FORM_TYPES:
        raise HTTPException(status_code=404, detail="Unknown form")
    return _read(mark_reviewed(db, client_id, form_type))
