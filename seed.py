"""
Seed script — creates active demo accounts for each role.

    python seed.py

Existing accounts with the same emails are replaced.
"""
import asyncio
import logging
from datetime import datetime

from sqlalchemy import delete

from homecare.db.database import engine, Base, async_session
from homecare.models.user import User, UserRole, Patient, Nurse, Admin
from homecare.api.middleware.auth import hash_password
import homecare.models  # noqa: F401

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
logger = logging.getLogger("seed")

DEMO_ACCOUNTS = [
    {
        "model": Patient,
        "email": "patient@test.com",
        "password": "Patient123!",
        "name": "Test Patient",
        "phone": "+201234567890",
        "national_id": "12345678901234",
        "date_of_birth": "1990-01-01",
        "gender": "Male",
        "emergency_contact": "+201234567899",
        "blood_type": "A+",
        "medical_conditions": [],
        "allergies": [],
    },
    {
        "model": Nurse,
        "email": "nurse@test.com",
        "password": "Nurse123!",
        "name": "Test Nurse",
        "phone": "+201234567891",
        "license_id": "NUR123456",
        "specializations": ["General Care", "Elderly Care"],
        "experience": "5 years",
        "is_available": True,
    },
    {
        "model": Admin,
        "email": "admin@test.com",
        "password": "Admin123!",
        "name": "Test Admin",
        "phone": "+201234567892",
    },
]


async def seed():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    emails = [acc["email"] for acc in DEMO_ACCOUNTS]
    async with async_session() as db:
        await db.execute(delete(User).where(User.email.in_(emails)))

        now = datetime.utcnow()
        for acc in DEMO_ACCOUNTS:
            fields = dict(acc)
            model = fields.pop("model")
            password = fields.pop("password")
            db.add(model(
                hashed_password=hash_password(password),
                is_active=True,
                activation_date=now,
                profile_complete=True,
                **fields,
            ))
            logger.info("Created demo account %s", acc["email"])

        await db.commit()

    await engine.dispose()
    logger.info("Seeded %d demo accounts (%s)", len(DEMO_ACCOUNTS), ", ".join(r.value for r in UserRole))


if __name__ == "__main__":
    asyncio.run(seed())
