from homecare.models.user import User, UserRole, Patient, Nurse, Admin
from homecare.models.service_request import ServiceRequest, ServiceRequestStatus, ServiceType
from homecare.models.medical_question import MedicalQuestion, QuestionStatus
from homecare.models.audit_log import AuditLog

__all__ = [
    "User",
    "UserRole",
    "Patient",
    "Nurse",
    "Admin",
    "ServiceRequest",
    "ServiceRequestStatus",
    "ServiceType",
    "MedicalQuestion",
    "QuestionStatus",
    "AuditLog",
]
