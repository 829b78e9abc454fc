"""
Service request model — a patient-initiated home nursing visit.

Accounts are referenced by id only; the patient and nurse rows are looked up
when needed and may be deleted independently of the requests.
"""

import enum
import uuid
from datetime import datetime

from sqlalchemy import Column, String, Enum, DateTime, Float, Integer, Boolean, Text, Uuid

from homecare.db.database import Base


class ServiceType(str, enum.Enum):
    PRESCRIBED = "prescribed"
    EMERGENCY = "emergency"


class ServiceRequestStatus(str, enum.Enum):
    PENDING = "pending"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


ACTIVE_STATUSES = (
    ServiceRequestStatus.PENDING,
    ServiceRequestStatus.ASSIGNED,
    ServiceRequestStatus.IN_PROGRESS,
)

COMPLETABLE_STATUSES = (
    ServiceRequestStatus.ASSIGNED,
    ServiceRequestStatus.IN_PROGRESS,
)


class ServiceRequest(Base):
    __tablename__ = "service_requests"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    patient_id = Column(Uuid(as_uuid=True), nullable=False, index=True)

    # Snapshot taken at creation
    patient_name = Column(String, nullable=False)
    patient_age = Column(String, nullable=False)

    service_type = Column(Enum(ServiceType), nullable=False)
    details = Column(Text, nullable=False)
    address = Column(String, nullable=False)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    broadcast_to_all_nurses = Column(Boolean, default=False)

    status = Column(Enum(ServiceRequestStatus), default=ServiceRequestStatus.PENDING, index=True)

    assigned_nurse_id = Column(Uuid(as_uuid=True), nullable=True, index=True)
    assigned_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)
    additional_services = Column(Text, nullable=True)

    cost = Column(Float, nullable=False)  # flat rate fixed at creation

    is_paid = Column(Boolean, default=False)
    payment_method = Column(String, nullable=True)
    transaction_number = Column(String, nullable=True)
    payment_date = Column(DateTime, nullable=True)

    rating_score = Column(Integer, nullable=True)  # 1-5
    rating_comment = Column(Text, nullable=True)
    rating_date = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
