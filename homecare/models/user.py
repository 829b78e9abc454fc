import enum
import uuid
from datetime import datetime

from sqlalchemy import Column, String, Enum, DateTime, Boolean, Float, JSON, Uuid

from homecare.db.database import Base


class UserRole(str, enum.Enum):
    PATIENT = "patient"
    NURSE = "nurse"
    ADMIN = "admin"


class User(Base):
    """Common account shape. The role column is the discriminator that picks
    the Patient / Nurse / Admin specialisation and never changes after insert.
    """

    __tablename__ = "users"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(String, unique=True, nullable=False, index=True)  # stored lower-cased
    hashed_password = Column(String, nullable=False)
    role = Column(Enum(UserRole), nullable=False)
    name = Column(String, nullable=False)
    phone = Column(String, nullable=False)
    address = Column(String, nullable=True)
    national_id = Column(String, nullable=True)
    profile_complete = Column(Boolean, default=False)
    profile_image = Column(String, nullable=True)
    is_active = Column(Boolean, default=False)
    registration_date = Column(DateTime, default=datetime.utcnow)
    activation_date = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Subtype columns load with the base row; async sessions cannot lazy-load them
    __mapper_args__ = {"polymorphic_on": role, "with_polymorphic": "*"}


class Patient(User):
    date_of_birth = Column(String, nullable=True)
    gender = Column(String, nullable=True)
    emergency_contact = Column(String, nullable=True)
    blood_type = Column(String, nullable=True)
    medical_conditions = Column(JSON, default=list)  # ["diabetes", "hypertension"]
    allergies = Column(JSON, default=list)           # ["penicillin"]

    __mapper_args__ = {"polymorphic_identity": UserRole.PATIENT}


class Nurse(User):
    license_id = Column(String, nullable=True)
    specializations = Column(JSON, default=list)
    experience = Column(String, nullable=True)
    is_available = Column(Boolean, default=False)

    # Last known position
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)

    balance = Column(Float, default=0.0)
    total_earned = Column(Float, default=0.0)

    __mapper_args__ = {"polymorphic_identity": UserRole.NURSE}


class Admin(User):
    __mapper_args__ = {"polymorphic_identity": UserRole.ADMIN}


ROLE_MODELS = {
    UserRole.PATIENT: Patient,
    UserRole.NURSE: Nurse,
    UserRole.ADMIN: Admin,
}
