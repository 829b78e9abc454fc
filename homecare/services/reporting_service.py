"""
Reporting service — read-only service request statistics for the admin
dashboard.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import select, func, case
from sqlalchemy.ext.asyncio import AsyncSession

from homecare.models.service_request import ServiceRequest, ServiceRequestStatus

logger = logging.getLogger(__name__)


async def get_service_stats(db: AsyncSession) -> dict[str, Any]:
    """Return request counts per status bucket and the mean rating.

    Fields returned:
    - total_requests, completed_requests, pending_requests
    - in_progress_requests (assigned and in-progress together)
    - average_rating (0 when nothing has been rated)
    """
    counts_q = select(
        func.count(ServiceRequest.id).label("total"),
        func.count(case(
            (ServiceRequest.status == ServiceRequestStatus.COMPLETED, ServiceRequest.id),
        )).label("completed"),
        func.count(case(
            (ServiceRequest.status == ServiceRequestStatus.PENDING, ServiceRequest.id),
        )).label("pending"),
        func.count(case(
            (
                ServiceRequest.status.in_([
                    ServiceRequestStatus.ASSIGNED,
                    ServiceRequestStatus.IN_PROGRESS,
                ]),
                ServiceRequest.id,
            ),
        )).label("in_progress"),
    )
    rating_q = (
        select(func.avg(ServiceRequest.rating_score))
        .where(ServiceRequest.rating_score.is_not(None))
    )

    counts = (await db.execute(counts_q)).one()
    average_rating = (await db.execute(rating_q)).scalar_one_or_none()

    return {
        "total_requests": counts.total,
        "completed_requests": counts.completed,
        "pending_requests": counts.pending,
        "in_progress_requests": counts.in_progress,
        "average_rating": float(average_rating) if average_rating is not None else 0,
    }
