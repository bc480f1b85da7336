"""
Append-only notes on clients and leads
"""

from datetime import datetime
from sqlalchemy import or_
from sqlmodel import Session, col, select
from typing import List, Type, Union

from app.core.dependencies import AuthContext
from app.models.client import Client
from app.models.lead import Lead
from app.models.note import ClientNote, LeadNote

NOTE_MODELS = {
    Client: (ClientNote, "client_id"),
    Lead: (LeadNote, "lead_id"),
}


def add_note(
    session: Session,
    entity: Union[Client, Lead],
    context: AuthContext,
    content: str,
    is_private: bool = False,
):
    """Append a note authored by the caller and touch last_contact"""
    note_model, foreign_key = NOTE_MODELS[type(entity)]
    now = datetime.utcnow()
    note = note_model(
        content=content,
        is_private=is_private,
        created_by=context.user_id,
        created_at=now,
        **{foreign_key: entity.id},
    )
    entity.last_contact = now
    entity.updated_at = now
    session.add(note)
    session.add(entity)
    return note


def list_notes(session: Session, entity_type: Type, entity_id, context: AuthContext) -> List:
    """Notes in insertion order; private notes only for their author"""
    note_model, foreign_key = NOTE_MODELS[entity_type]
    statement = select(note_model).where(getattr(note_model, foreign_key) == entity_id)
    if not context.is_super_admin:
        statement = statement.where(
            or_(col(note_model.is_private).is_(False), col(note_model.created_by) == context.user_id)
        )
    return list(session.exec(statement.order_by(col(note_model.id))).all())
