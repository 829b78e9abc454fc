import uuid
from datetime import datetime

from sqlalchemy import Column, String, DateTime, Uuid

from homecare.db.database import Base


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), nullable=True)
    action = Column(String, nullable=False)  # "create", "accept", "complete", "activate", ...
    resource = Column(String, nullable=False)  # "user", "service_request", "medical_question"
    resource_id = Column(String, nullable=True)
    details = Column(String, nullable=True)
    ip_address = Column(String, nullable=True)
    user_agent = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
