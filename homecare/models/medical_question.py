import enum
import uuid
from datetime import datetime

from sqlalchemy import Column, String, Enum, DateTime, Text, Uuid

from homecare.db.database import Base


class QuestionStatus(str, enum.Enum):
    OPEN = "open"
    ASSIGNED = "assigned"  # declared for clients, no transition produces it
    ANSWERED = "answered"


class MedicalQuestion(Base):
    __tablename__ = "medical_questions"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    patient_id = Column(Uuid(as_uuid=True), nullable=False, index=True)
    patient_name = Column(String, nullable=False)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    status = Column(Enum(QuestionStatus), default=QuestionStatus.OPEN, index=True)

    # Populated together when the question is answered
    assigned_to = Column(Uuid(as_uuid=True), nullable=True)
    assigned_to_name = Column(String, nullable=True)
    answer = Column(Text, nullable=True)
    answered_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
