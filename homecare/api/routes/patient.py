"""
Patient API routes.

Endpoints:
    POST /patient/request-service          — Create a service request (active patient)
    GET  /patient/current-request          — Latest active request + nurse contact
    GET  /patient/request-history          — All own requests, newest first
    POST /patient/requests/{id}/cancel     — Cancel a pending request (active patient)
    POST /patient/payment                  — Pay for a request (active patient)
    POST /patient/rating                   — Rate a completed request (active patient)
    POST /patient/questions                — Ask a medical question (active patient)
    GET  /patient/questions                — Own questions, newest first

Read endpoints stay open to inactive patients so they can follow their
pending account.
"""

from typing import Optional, Union
from uuid import UUID

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from pydantic import AliasChoices, BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from homecare.api.common import Coordinates, error, success, success_list
from homecare.api.middleware.audit import record_action
from homecare.api.middleware.auth import require_active, require_role
from homecare.db.database import get_db
from homecare.models.user import User, UserRole
from homecare.services import question_service, service_request_service

router = APIRouter()


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------

class ServiceRequestCreateRequest(BaseModel):
    patient_name: Optional[str] = Field(None, validation_alias=AliasChoices("patient_name", "patientName"))
    patient_age: Union[str, int] = Field(..., validation_alias=AliasChoices("patient_age", "patientAge"))
    service_type: str = Field(
        ...,
        validation_alias=AliasChoices("service_type", "serviceType"),
        description="prescribed, emergency",
    )
    details: str = Field(..., min_length=1)
    address: str = Field(..., min_length=1)
    coordinates: Optional[Coordinates] = None
    broadcast_to_all_nurses: bool = Field(
        False, validation_alias=AliasChoices("broadcast_to_all_nurses", "broadcastToAllNurses"),
    )


class PaymentRequest(BaseModel):
    request_id: UUID = Field(..., validation_alias=AliasChoices("request_id", "requestId"))
    method: str = Field(..., min_length=1)
    transaction_number: Optional[str] = Field(
        None, validation_alias=AliasChoices("transaction_number", "transactionNumber"),
    )
    amount: Optional[float] = None  # informational, the stored cost is authoritative


class RatingRequest(BaseModel):
    request_id: UUID = Field(..., validation_alias=AliasChoices("request_id", "requestId"))
    rating: int
    comment: Optional[str] = None


class QuestionCreateRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=300)
    description: str = Field(..., min_length=1)


# ---------------------------------------------------------------------------
# Service requests
# ---------------------------------------------------------------------------

@router.post("/patient/request-service", status_code=status.HTTP_201_CREATED)
async def request_service(
    payload: ServiceRequestCreateRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_active(UserRole.PATIENT)),
):
    """Create a new service request. Cost is fixed by the service type."""
    coords = payload.coordinates
    result = await service_request_service.create_request(
        db,
        patient=current_user,
        patient_name=payload.patient_name or current_user.name,
        patient_age=str(payload.patient_age),
        service_type=payload.service_type,
        details=payload.details,
        address=payload.address,
        latitude=coords.latitude if coords else None,
        longitude=coords.longitude if coords else None,
        broadcast_to_all_nurses=payload.broadcast_to_all_nurses,
    )

    await record_action(
        db,
        actor=current_user,
        action="create",
        resource="service_request",
        resource_id=result["id"],
        details=f"Service request created: {result['service_type']}",
        request=request,
    )

    return success(result)


@router.get("/patient/current-request")
async def get_current_request(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.PATIENT)),
):
    result = await service_request_service.get_current_request(db, current_user.id)
    if result is None:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content=error("No active service requests found"),
        )
    return success(result)


@router.get("/patient/request-history")
async def get_request_history(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.PATIENT)),
):
    requests_list = await service_request_service.list_patient_requests(db, current_user.id)
    return success_list(requests_list)


@router.post("/patient/requests/{request_id}/cancel")
async def cancel_request(
    request_id: UUID,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_active(UserRole.PATIENT)),
):
    """Cancel a request nobody has accepted yet."""
    result = await service_request_service.cancel_request(db, request_id, current_user)

    await record_action(
        db,
        actor=current_user,
        action="cancel",
        resource="service_request",
        resource_id=str(request_id),
        details="Service request cancelled by patient",
        request=request,
    )

    return success(result, message="Request cancelled successfully")


@router.post("/patient/payment")
async def submit_payment(
    payload: PaymentRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_active(UserRole.PATIENT)),
):
    result = await service_request_service.submit_payment(
        db,
        payload.request_id,
        current_user,
        method=payload.method,
        transaction_number=payload.transaction_number,
    )

    await record_action(
        db,
        actor=current_user,
        action="pay",
        resource="service_request",
        resource_id=str(payload.request_id),
        details=f"Payment via {payload.method}",
        request=request,
    )

    return success(result, message="Payment successful")


@router.post("/patient/rating")
async def submit_rating(
    payload: RatingRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_active(UserRole.PATIENT)),
):
    result = await service_request_service.submit_rating(
        db,
        payload.request_id,
        current_user,
        score=payload.rating,
        comment=payload.comment,
    )

    await record_action(
        db,
        actor=current_user,
        action="rate",
        resource="service_request",
        resource_id=str(payload.request_id),
        details=f"Rated {payload.rating}/5",
        request=request,
    )

    return success(result, message="Rating submitted successfully")


# ---------------------------------------------------------------------------
# Medical questions
# ---------------------------------------------------------------------------

@router.post("/patient/questions", status_code=status.HTTP_201_CREATED)
async def ask_question(
    payload: QuestionCreateRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_active(UserRole.PATIENT)),
):
    result = await question_service.ask_question(
        db,
        patient=current_user,
        title=payload.title,
        description=payload.description,
    )
    return success(result)


@router.get("/patient/questions")
async def get_questions(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.PATIENT)),
):
    questions = await question_service.list_patient_questions(db, current_user.id)
    return success_list(questions)
