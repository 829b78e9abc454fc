"""
Service request service — creation, assignment, completion, cancellation,
payment and rating of home nursing visits.

Every guarded transition is a single ``UPDATE ... WHERE <expected state>``;
the affected row count decides whether it happened, so two nurses accepting
the same request cannot both win.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from homecare.config import get_settings
from homecare.exceptions import (
    AlreadyPaid,
    Forbidden,
    InvalidTransition,
    NotFound,
    ValidationError,
)
from homecare.models.service_request import (
    ServiceRequest, ServiceType, ServiceRequestStatus,
    ACTIVE_STATUSES, COMPLETABLE_STATUSES,
)
from homecare.models.user import Nurse, Patient, User
from homecare.services import user_service
from homecare.services.notification_service import NotificationKind, notify

logger = logging.getLogger(__name__)

MIN_RATING = 1
MAX_RATING = 5


def _request_to_dict(req: ServiceRequest) -> dict[str, Any]:
    return {
        "id": str(req.id),
        "patient_id": str(req.patient_id),
        "patient_name": req.patient_name,
        "patient_age": req.patient_age,
        "service_type": req.service_type.value if req.service_type else None,
        "details": req.details,
        "address": req.address,
        "coordinates": (
            {"latitude": req.latitude, "longitude": req.longitude}
            if req.latitude is not None and req.longitude is not None else None
        ),
        "broadcast_to_all_nurses": bool(req.broadcast_to_all_nurses),
        "status": req.status.value if req.status else None,
        "assigned_nurse_id": str(req.assigned_nurse_id) if req.assigned_nurse_id else None,
        "assigned_at": req.assigned_at.isoformat() if req.assigned_at else None,
        "completed_at": req.completed_at.isoformat() if req.completed_at else None,
        "cancelled_at": req.cancelled_at.isoformat() if req.cancelled_at else None,
        "additional_services": req.additional_services,
        "cost": req.cost,
        "is_paid": bool(req.is_paid),
        "payment_method": req.payment_method,
        "transaction_number": req.transaction_number,
        "payment_date": req.payment_date.isoformat() if req.payment_date else None,
        "rating": (
            {
                "score": req.rating_score,
                "comment": req.rating_comment or "",
                "date": req.rating_date.isoformat() if req.rating_date else None,
            }
            if req.rating_score is not None else None
        ),
        "created_at": req.created_at.isoformat() if req.created_at else None,
        "updated_at": req.updated_at.isoformat() if req.updated_at else None,
    }


def compute_cost(service_type: ServiceType) -> float:
    """Flat-rate price, decided once when the request is created."""
    settings = get_settings()
    if service_type == ServiceType.EMERGENCY:
        return float(settings.EMERGENCY_SERVICE_COST)
    return float(settings.PRESCRIBED_SERVICE_COST)


async def _get_request_or_404(db: AsyncSession, request_id: uuid.UUID) -> ServiceRequest:
    req = await db.get(ServiceRequest, request_id)
    if req is None:
        raise NotFound("Service request not found")
    return req


async def _apply_transition(db: AsyncSession, request_id: uuid.UUID, *criteria, **values) -> bool:
    """Run one conditional UPDATE. True if exactly this row moved."""
    values.setdefault("updated_at", datetime.utcnow())
    result = await db.execute(
        update(ServiceRequest)
        .where(ServiceRequest.id == request_id, *criteria)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


async def _reload(db: AsyncSession, request_id: uuid.UUID) -> ServiceRequest:
    req = await db.get(ServiceRequest, request_id, populate_existing=True)
    return req


# ---------------------------------------------------------------------------
# Creation
# ---------------------------------------------------------------------------

async def create_request(
    db: AsyncSession,
    *,
    patient: Patient,
    patient_name: str,
    patient_age: str,
    service_type: str | ServiceType,
    details: str,
    address: str,
    latitude: float | None = None,
    longitude: float | None = None,
    broadcast_to_all_nurses: bool = False,
) -> dict[str, Any]:
    try:
        service_type = ServiceType(service_type)
    except ValueError:
        raise ValidationError("Service type must be 'prescribed' or 'emergency'")

    for field, value in (
        ("patient_name", patient_name), ("patient_age", patient_age),
        ("details", details), ("address", address),
    ):
        if value is None or not str(value).strip():
            raise ValidationError(f"{field} is required")

    req = ServiceRequest(
        id=uuid.uuid4(),
        patient_id=patient.id,
        patient_name=patient_name,
        patient_age=str(patient_age),
        service_type=service_type,
        details=details,
        address=address,
        latitude=latitude,
        longitude=longitude,
        broadcast_to_all_nurses=bool(broadcast_to_all_nurses),
        status=ServiceRequestStatus.PENDING,
        cost=compute_cost(service_type),
    )
    db.add(req)
    await db.flush()
    await db.refresh(req)

    payload = _request_to_dict(req)
    logger.info(
        "Created %s service request %s for patient %s (cost %.2f)",
        service_type.value, req.id, patient.id, req.cost,
    )

    notify(NotificationKind.REQUEST_CONFIRMED, patient, payload, db=db)

    if req.broadcast_to_all_nurses:
        # TODO: push to each available nurse once a nurse-targeting channel exists
        available = await user_service.count_available_nurses(db)
        logger.info("Broadcast request %s visible to %d available nurses", req.id, available)

    return payload


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

async def get_request(db: AsyncSession, request_id: uuid.UUID) -> dict[str, Any]:
    return _request_to_dict(await _get_request_or_404(db, request_id))


async def get_current_request(db: AsyncSession, patient_id: uuid.UUID) -> dict[str, Any] | None:
    """Most recent active request of a patient, with its nurse's contact card."""
    result = await db.execute(
        select(ServiceRequest)
        .where(
            ServiceRequest.patient_id == patient_id,
            ServiceRequest.status.in_(ACTIVE_STATUSES),
        )
        .order_by(ServiceRequest.created_at.desc())
        .limit(1)
    )
    req = result.scalar_one_or_none()
    if req is None:
        return None

    nurse = None
    if req.assigned_nurse_id:
        nurse = await user_service.get_user(db, req.assigned_nurse_id)

    return {"request": _request_to_dict(req), "nurse": user_service.public_contact(nurse)}


async def list_patient_requests(db: AsyncSession, patient_id: uuid.UUID) -> list[dict[str, Any]]:
    result = await db.execute(
        select(ServiceRequest)
        .where(ServiceRequest.patient_id == patient_id)
        .order_by(ServiceRequest.created_at.desc())
    )
    return [_request_to_dict(r) for r in result.scalars().all()]


async def list_nurse_requests(db: AsyncSession, nurse_id: uuid.UUID) -> list[dict[str, Any]]:
    result = await db.execute(
        select(ServiceRequest)
        .where(ServiceRequest.assigned_nurse_id == nurse_id)
        .order_by(ServiceRequest.created_at.desc())
    )
    return [_request_to_dict(r) for r in result.scalars().all()]


async def list_open_broadcast_requests(db: AsyncSession) -> list[dict[str, Any]]:
    result = await db.execute(
        select(ServiceRequest)
        .where(
            ServiceRequest.status == ServiceRequestStatus.PENDING,
            ServiceRequest.broadcast_to_all_nurses.is_(True),
        )
        .order_by(ServiceRequest.created_at.desc())
    )
    return [_request_to_dict(r) for r in result.scalars().all()]


async def list_all_requests(db: AsyncSession) -> list[dict[str, Any]]:
    result = await db.execute(select(ServiceRequest).order_by(ServiceRequest.created_at.desc()))
    return [_request_to_dict(r) for r in result.scalars().all()]


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------

async def accept_request(
    db: AsyncSession,
    request_id: uuid.UUID,
    nurse: Nurse,
    *,
    latitude: float | None = None,
    longitude: float | None = None,
) -> dict[str, Any]:
    """pending -> assigned. Only the first nurse to get here wins."""
    await _get_request_or_404(db, request_id)

    now = datetime.utcnow()
    moved = await _apply_transition(
        db, request_id,
        ServiceRequest.status == ServiceRequestStatus.PENDING,
        status=ServiceRequestStatus.ASSIGNED,
        assigned_nurse_id=nurse.id,
        assigned_at=now,
    )
    if not moved:
        logger.info("Nurse %s lost request %s: no longer pending", nurse.id, request_id)
        raise InvalidTransition("This request is no longer available")

    await user_service.set_nurse_location(db, nurse, latitude, longitude)

    req = await _reload(db, request_id)
    payload = _request_to_dict(req)
    logger.info("Service request %s assigned to nurse %s", request_id, nurse.id)

    patient = await user_service.get_user(db, req.patient_id)
    notify(
        NotificationKind.NURSE_ASSIGNED,
        patient,
        {**payload, "nurse_name": nurse.name, "nurse_phone": nurse.phone},
        db=db,
    )
    return payload


async def complete_request(
    db: AsyncSession,
    request_id: uuid.UUID,
    nurse: Nurse,
    *,
    additional_services: str | None = None,
) -> dict[str, Any]:
    """assigned / in-progress -> completed, by the assigned nurse only."""
    req = await _get_request_or_404(db, request_id)

    if req.assigned_nurse_id != nurse.id:
        raise Forbidden("You are not assigned to this request")
    if req.status not in COMPLETABLE_STATUSES:
        raise InvalidTransition("This request cannot be completed")

    values: dict[str, Any] = {
        "status": ServiceRequestStatus.COMPLETED,
        "completed_at": datetime.utcnow(),
    }
    if additional_services:
        values["additional_services"] = additional_services

    moved = await _apply_transition(
        db, request_id,
        ServiceRequest.assigned_nurse_id == nurse.id,
        ServiceRequest.status.in_(COMPLETABLE_STATUSES),
        **values,
    )
    if not moved:
        raise InvalidTransition("This request cannot be completed")

    req = await _reload(db, request_id)
    payload = _request_to_dict(req)
    logger.info("Service request %s completed by nurse %s", request_id, nurse.id)

    patient = await user_service.get_user(db, req.patient_id)
    notify(NotificationKind.SERVICE_COMPLETED, patient, payload, db=db)
    return payload


async def cancel_request(db: AsyncSession, request_id: uuid.UUID, patient: User) -> dict[str, Any]:
    """pending -> cancelled, by the owning patient before any nurse accepts."""
    req = await _get_request_or_404(db, request_id)
    if req.patient_id != patient.id:
        raise Forbidden("You are not authorized to cancel this request")

    moved = await _apply_transition(
        db, request_id,
        ServiceRequest.status == ServiceRequestStatus.PENDING,
        status=ServiceRequestStatus.CANCELLED,
        cancelled_at=datetime.utcnow(),
    )
    if not moved:
        raise InvalidTransition("Only pending requests can be cancelled")

    logger.info("Service request %s cancelled by patient %s", request_id, patient.id)
    return _request_to_dict(await _reload(db, request_id))


async def submit_payment(
    db: AsyncSession,
    request_id: uuid.UUID,
    patient: User,
    *,
    method: str,
    transaction_number: str | None = None,
) -> dict[str, Any]:
    """Record payment once and credit the assigned nurse their share."""
    if not method:
        raise ValidationError("Payment method is required")

    req = await _get_request_or_404(db, request_id)
    if req.patient_id != patient.id:
        raise Forbidden("You are not authorized to pay for this request")
    if req.is_paid:
        raise AlreadyPaid()

    now = datetime.utcnow()
    moved = await _apply_transition(
        db, request_id,
        ServiceRequest.is_paid.is_(False),
        is_paid=True,
        payment_method=method,
        transaction_number=transaction_number,
        payment_date=now,
    )
    if not moved:
        raise AlreadyPaid()

    req = await _reload(db, request_id)

    if req.assigned_nurse_id:
        settings = get_settings()
        share = round(req.cost * settings.NURSE_PAYOUT_RATE, 2)
        credited = await db.execute(
            update(Nurse)
            .where(Nurse.id == req.assigned_nurse_id)
            .values(
                balance=Nurse.balance + share,
                total_earned=Nurse.total_earned + share,
            )
            .execution_options(synchronize_session=False)
        )
        if credited.rowcount:
            logger.info("Credited %.2f to nurse %s for request %s", share, req.assigned_nurse_id, request_id)
        else:
            logger.warning("Assigned nurse %s of request %s no longer exists", req.assigned_nurse_id, request_id)

    logger.info("Payment recorded for service request %s via %s", request_id, method)
    return {"is_paid": True, "payment_date": req.payment_date.isoformat()}


async def submit_rating(
    db: AsyncSession,
    request_id: uuid.UUID,
    patient: User,
    *,
    score: int,
    comment: str | None = None,
) -> dict[str, Any]:
    """Rate a completed request. A rating can be given once and never edited."""
    if score is None or score < MIN_RATING or score > MAX_RATING:
        raise ValidationError(f"Rating must be between {MIN_RATING} and {MAX_RATING}")

    req = await _get_request_or_404(db, request_id)
    if req.patient_id != patient.id:
        raise Forbidden("You are not authorized to rate this request")
    if req.status != ServiceRequestStatus.COMPLETED:
        raise InvalidTransition("You can only rate completed requests")
    if req.rating_score is not None:
        raise InvalidTransition("This request has already been rated")

    moved = await _apply_transition(
        db, request_id,
        ServiceRequest.status == ServiceRequestStatus.COMPLETED,
        ServiceRequest.rating_score.is_(None),
        rating_score=score,
        rating_comment=comment or "",
        rating_date=datetime.utcnow(),
    )
    if not moved:
        raise InvalidTransition("This request has already been rated")

    req = await _reload(db, request_id)
    logger.info("Service request %s rated %d by patient %s", request_id, score, patient.id)
    return _request_to_dict(req)["rating"]
