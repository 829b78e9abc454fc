"""
Medical question service — patients ask, nurses answer once.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from homecare.exceptions import AlreadyAnswered, NotFound, ValidationError
from homecare.models.medical_question import MedicalQuestion, QuestionStatus
from homecare.models.user import User

logger = logging.getLogger(__name__)


def _question_to_dict(q: MedicalQuestion) -> dict[str, Any]:
    return {
        "id": str(q.id),
        "patient_id": str(q.patient_id),
        "patient_name": q.patient_name,
        "title": q.title,
        "description": q.description,
        "status": q.status.value if q.status else None,
        "assigned_to": str(q.assigned_to) if q.assigned_to else None,
        "assigned_to_name": q.assigned_to_name,
        "answer": q.answer,
        "answered_at": q.answered_at.isoformat() if q.answered_at else None,
        "created_at": q.created_at.isoformat() if q.created_at else None,
        "updated_at": q.updated_at.isoformat() if q.updated_at else None,
    }


async def ask_question(
    db: AsyncSession,
    *,
    patient: User,
    title: str,
    description: str,
) -> dict[str, Any]:
    if not title or not title.strip():
        raise ValidationError("title is required")
    if not description or not description.strip():
        raise ValidationError("description is required")

    question = MedicalQuestion(
        id=uuid.uuid4(),
        patient_id=patient.id,
        patient_name=patient.name,
        title=title,
        description=description,
        status=QuestionStatus.OPEN,
    )
    db.add(question)
    await db.flush()
    await db.refresh(question)

    logger.info("Patient %s asked question %s", patient.id, question.id)
    return _question_to_dict(question)


async def list_patient_questions(db: AsyncSession, patient_id: uuid.UUID) -> list[dict[str, Any]]:
    result = await db.execute(
        select(MedicalQuestion)
        .where(MedicalQuestion.patient_id == patient_id)
        .order_by(MedicalQuestion.created_at.desc())
    )
    return [_question_to_dict(q) for q in result.scalars().all()]


async def list_open_questions(db: AsyncSession) -> list[dict[str, Any]]:
    result = await db.execute(
        select(MedicalQuestion)
        .where(MedicalQuestion.status == QuestionStatus.OPEN)
        .order_by(MedicalQuestion.created_at.desc())
    )
    return [_question_to_dict(q) for q in result.scalars().all()]


async def answer_question(
    db: AsyncSession,
    question_id: uuid.UUID,
    answerer: User,
    answer: str,
) -> dict[str, Any]:
    """open -> answered. All answer fields are written by one statement."""
    if not answer or not answer.strip():
        raise ValidationError("answer is required")

    question = await db.get(MedicalQuestion, question_id)
    if question is None:
        raise NotFound("Question not found")
    if question.status == QuestionStatus.ANSWERED:
        raise AlreadyAnswered()

    now = datetime.utcnow()
    result = await db.execute(
        update(MedicalQuestion)
        .where(
            MedicalQuestion.id == question_id,
            MedicalQuestion.status != QuestionStatus.ANSWERED,
        )
        .values(
            status=QuestionStatus.ANSWERED,
            assigned_to=answerer.id,
            assigned_to_name=answerer.name,
            answer=answer,
            answered_at=now,
            updated_at=now,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise AlreadyAnswered()

    question = await db.get(MedicalQuestion, question_id, populate_existing=True)
    logger.info("Question %s answered by %s", question_id, answerer.id)
    return _question_to_dict(question)
