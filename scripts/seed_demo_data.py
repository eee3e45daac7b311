"""
Seed Demo Data

Creates one school, one student and one company account, and enrolls the
student at the school, so every workspace can be tried locally.
Safe to run repeatedly: existing accounts are left alone.

Usage:
    DEMO_PASSWORD=secret123 python scripts/seed_demo_data.py
"""

import asyncio
import os

from certvault.core.database import async_session_maker, close_db
from certvault.core.security import hash_password
from certvault.modules.principals.models import Role
from certvault.modules.principals.repository import PrincipalRepository
from certvault.modules.students import repository as student_repository
from certvault.modules.students.schemas import StudentEnrollRequest

DEMO_ACCOUNTS = [
    ("school@demo.certvault.dev", Role.SCHOOL, "Demo University"),
    ("student@demo.certvault.dev", Role.STUDENT, None),
    ("company@demo.certvault.dev", Role.COMPANY, "Demo Recruiting Ltd"),
]


async def seed_demo_data() -> None:
    password = os.environ.get("DEMO_PASSWORD", "demo-password")

    async with async_session_maker() as db:
        principals = {}
        for email, role, display_name in DEMO_ACCOUNTS:
            principal = await PrincipalRepository.get_by_email(db, email)
            if principal:
                print(f"{role.value} already exists: {email}")
            else:
                principal = await PrincipalRepository.create(
                    db,
                    email=email,
                    password_hash=hash_password(password),
                    role=role,
                    display_name=display_name,
                )
                print(f"Created {role.value}: {email} (ID: {principal.id})")
            principals[role] = principal

        student_email = principals[Role.STUDENT].email
        if await student_repository.list_by_email(db, student_email):
            print(f"Student record already exists for {student_email}")
        else:
            record = await student_repository.create(
                db,
                principals[Role.SCHOOL].id,
                StudentEnrollRequest(
                    name="Demo Student",
                    email=student_email,
                    student_id="DEMO-0001",
                    program="Computer Science",
                    enrollment_year=2022,
                ),
            )
            print(f"Enrolled {student_email} at Demo University (ID: {record.id})")

    await close_db()


if __name__ == "__main__":
    asyncio.run(seed_demo_data())
