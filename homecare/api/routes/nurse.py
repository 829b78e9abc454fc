"""
Nurse API routes.

Endpoints:
    POST /nurse/profile                      — Update nurse-specific profile fields
    POST /nurse/availability                 — Toggle availability, report location (active nurse)
    GET  /nurse/requests                     — Pending broadcast requests (active nurse)
    GET  /nurse/request-history              — Requests assigned to me (active nurse)
    POST /nurse/requests/{id}/accept         — Take a pending request (active nurse)
    POST /nurse/requests/{id}/complete       — Finish an assigned request (active nurse)
    GET  /nurse/questions                    — Open medical questions (active nurse)
    POST /nurse/questions/{id}/answer        — Answer a question (active nurse)
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Request
from pydantic import AliasChoices, BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from homecare.api.common import Coordinates, success, success_list
from homecare.api.middleware.audit import record_action
from homecare.api.middleware.auth import require_active, require_role
from homecare.db.database import get_db
from homecare.models.user import Nurse, UserRole
from homecare.services import question_service, service_request_service, user_service

router = APIRouter()


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------

class NurseProfileRequest(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    license_id: Optional[str] = Field(None, validation_alias=AliasChoices("license_id", "licenseId"))
    specializations: Optional[list[str]] = None
    experience: Optional[str] = None


class AvailabilityRequest(BaseModel):
    available: bool
    location: Optional[Coordinates] = None


class AcceptRequest(BaseModel):
    location: Optional[Coordinates] = None


class CompleteRequest(BaseModel):
    additional_services: Optional[str] = Field(
        None, validation_alias=AliasChoices("additional_services", "additionalServices"),
    )


class AnswerRequest(BaseModel):
    answer: str = Field(..., min_length=1)


# ---------------------------------------------------------------------------
# Profile & availability
# ---------------------------------------------------------------------------

@router.post("/nurse/profile")
async def update_nurse_profile(
    payload: NurseProfileRequest,
    db: AsyncSession = Depends(get_db),
    current_user: Nurse = Depends(require_role(UserRole.NURSE)),
):
    """Nurse-specific profile fields. Allowed before activation."""
    nurse = await user_service.update_user(db, current_user, payload.model_dump(exclude_unset=True))
    return success(user_service.user_to_dict(nurse))


@router.post("/nurse/availability")
async def set_availability(
    payload: AvailabilityRequest,
    db: AsyncSession = Depends(get_db),
    current_user: Nurse = Depends(require_active(UserRole.NURSE)),
):
    loc = payload.location
    nurse = await user_service.set_nurse_availability(
        db,
        current_user,
        payload.available,
        latitude=loc.latitude if loc else None,
        longitude=loc.longitude if loc else None,
    )
    data = user_service.user_to_dict(nurse)
    return success({"available": data["is_available"], "location": data["location"]})


# ---------------------------------------------------------------------------
# Service requests
# ---------------------------------------------------------------------------

@router.get("/nurse/requests")
async def list_available_requests(
    db: AsyncSession = Depends(get_db),
    current_user: Nurse = Depends(require_active(UserRole.NURSE)),
):
    """Pending requests that were broadcast to all nurses."""
    requests_list = await service_request_service.list_open_broadcast_requests(db)
    return success_list(requests_list)


@router.get("/nurse/request-history")
async def get_request_history(
    db: AsyncSession = Depends(get_db),
    current_user: Nurse = Depends(require_active(UserRole.NURSE)),
):
    requests_list = await service_request_service.list_nurse_requests(db, current_user.id)
    return success_list(requests_list)


@router.post("/nurse/requests/{request_id}/accept")
async def accept_request(
    request_id: UUID,
    request: Request,
    payload: Optional[AcceptRequest] = None,
    db: AsyncSession = Depends(get_db),
    current_user: Nurse = Depends(require_active(UserRole.NURSE)),
):
    loc = payload.location if payload else None
    result = await service_request_service.accept_request(
        db,
        request_id,
        current_user,
        latitude=loc.latitude if loc else None,
        longitude=loc.longitude if loc else None,
    )

    await record_action(
        db,
        actor=current_user,
        action="accept",
        resource="service_request",
        resource_id=str(request_id),
        details="Service request accepted",
        request=request,
    )

    return success(result, message="Request accepted successfully")


@router.post("/nurse/requests/{request_id}/complete")
async def complete_request(
    request_id: UUID,
    request: Request,
    payload: Optional[CompleteRequest] = None,
    db: AsyncSession = Depends(get_db),
    current_user: Nurse = Depends(require_active(UserRole.NURSE)),
):
    result = await service_request_service.complete_request(
        db,
        request_id,
        current_user,
        additional_services=payload.additional_services if payload else None,
    )

    await record_action(
        db,
        actor=current_user,
        action="complete",
        resource="service_request",
        resource_id=str(request_id),
        details="Service completed",
        request=request,
    )

    return success(result, message="Service completed successfully")


# ---------------------------------------------------------------------------
# Medical questions
# ---------------------------------------------------------------------------

@router.get("/nurse/questions")
async def list_open_questions(
    db: AsyncSession = Depends(get_db),
    current_user: Nurse = Depends(require_active(UserRole.NURSE)),
):
    questions = await question_service.list_open_questions(db)
    return success_list(questions)


@router.post("/nurse/questions/{question_id}/answer")
async def answer_question(
    question_id: UUID,
    payload: AnswerRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: Nurse = Depends(require_active(UserRole.NURSE)),
):
    result = await question_service.answer_question(db, question_id, current_user, payload.answer)

    await record_action(
        db,
        actor=current_user,
        action="answer",
        resource="medical_question",
        resource_id=str(question_id),
        details="Medical question answered",
        request=request,
    )

    return success(result, message="Question answered successfully")
