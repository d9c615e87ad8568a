# backend/studio/services/forms.py
"""
Client intake forms.

Two forms per client: the welcome questionnaire and the PAR-Q health check.
Submitting again overwrites the answers and clears any earlier review. The
trainer sees every client with the forms they have completed and marks
submissions as reviewed.
"""

import json
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ..clock import localize
from ..errors import NotFoundError, ValidationError
from ..models.tables import ClientForms as DBClientForms, Clients as DBClients

logger = logging.getLogger(__name__)

FORM_WELCOME = "welcome"
FORM_PARQ = "parq"
FORM_TYPES = (FORM_WELCOME, FORM_PARQ)

PARQ_QUESTIONS = (
    "q1_heart_condition",
    "q2_chest_pain",
    "q3_chest_pain_last_month",
    "q4_balance",
    "q5_bone_joint",
    "q6_blood_pressure",
    "q7_other_reason",
)

# filter -> number of completed forms that matches
STATUS_FILTERS = {
    "all": None,
    "completed": lambda n: n == len(FORM_TYPES),
    "partial": lambda n: 0 < n < len(FORM_TYPES),
    "pending": lambda n: n == 0,
}


@dataclass(frozen=True)
class ClientFormsSummary:
    client_id: int
    name: str
    email: str
    forms: dict[str, DBClientForms]

    @property
    def status(self) -> str:
        done = len(self.forms)
        if done == len(FORM_TYPES):
            return "completed"
        return "partial" if done else "pending"


def parq_flags(answers: dict) -> list[str]:
    """PAR-Q questions answered yes."""
    return [q for q in PARQ_QUESTIONS if answers.get(q)]


def load_answers(form: DBClientForms) -> dict:
    return json.loads(form.answers)


def get_form(db: Session, client_id: int, form_type: str) -> Optional[DBClientForms]:
    return (
        db.query(DBClientForms)
        .filter(DBClientForms.client_id == client_id)
        .filter(DBClientForms.form_type == form_type)
        .first()
    )


def client_forms(db: Session, client_id: int) -> dict[str, DBClientForms]:
    rows = db.query(DBClientForms).filter(DBClientForms.client_id == client_id).all()
    return {row.form_type: row for row in rows}


def submit_form(
    db: Session,
    client: DBClients,
    form_type: str,
    answers: dict,
    now: datetime | None = None,
) -> DBClientForms:
    """
    Store a completed form.

    Raises:
        ValidationError: unknown form type, or a PAR-Q without the declaration
    """
    if form_type not in FORM_TYPES:
        raise ValidationError(f"Unknown form: {form_type}")
    if form_type == FORM_PARQ and not answers.get("declaration"):
        raise ValidationError("Please confirm the declaration to submit the form.")

    form = get_form(db, client.id, form_type)
    if form is None:
        form = DBClientForms(client_id=client.id, form_type=form_type)
        db.add(form)

    form.answers = json.dumps(answers)
    form.completed_at = localize(now).isoformat()
    form.reviewed_at = None

    db.commit()
    db.refresh(form)

    if form_type == FORM_PARQ and parq_flags(answers):
        logger.info(f"PAR-Q from client={client.id} flags {', '.join(parq_flags(answers))}")
    else:
        logger.info(f"{form_type} form submitted by client={client.id}")
    return form


def list_submissions(
    db: Session,
    status: str = "all",
    search: Optional[str] = None,
) -> list[ClientFormsSummary]:
    """Clients by name with their forms, filtered by completion and a name search."""
    if status not in STATUS_FILTERS:
        raise ValidationError(f"Unknown filter: {status}")

    query = db.query(DBClients).order_by(DBClients.name)
    if search:
        query = query.filter(DBClients.name.ilike(f"%{search.strip()}%"))
    clients = query.all()

    forms_by_client: dict[int, dict[str, DBClientForms]] = {}
    if clients:
        rows = (
            db.query(DBClientForms)
            .filter(DBClientForms.client_id.in_([c.id for c in clients]))
            .all()
        )
        for row in rows:
            forms_by_client.setdefault(row.client_id, {})[row.form_type] = row

    matches = STATUS_FILTERS[status]
    result = []
    for client in clients:
        forms = forms_by_client.get(client.id, {})
        if matches is not None and not matches(len(forms)):
            continue
        result.append(ClientFormsSummary(
            client_id=client.id,
            name=client.name,
            email=client.email,
            forms=forms,
        ))
    return result


def mark_reviewed(
    db: Session,
    client_id: int,
    form_type: str,
    now: datetime | None = None,
) -> DBClientForms:
    form = get_form(db, client_id, form_type)
    if form is None:
        raise NotFoundError("Form not submitted")

    form.reviewed_at = localize(now).isoformat()
    db.commit()
    db.refresh(form)
    logger.info(f"{form_type} form of client={client_id} reviewed")
    return form
