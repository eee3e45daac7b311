"""
Principal Repository

Database operations for principals.
"""

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from certvault.modules.principals.models import Principal, Role

logger = logging.getLogger(__name__)


class PrincipalRepository:
    """Repository for principal database operations."""

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        email: str,
        password_hash: str,
        role: Role,
        display_name: str | None = None,
    ) -> Principal:
        """
        Create a new principal record.

        Args:
            db: Database session
            email: Login email (stored lower-case, unique)
            password_hash: bcrypt hash of the password
            role: Fixed role of the principal
            display_name: School or company name (optional)

        Returns:
            Created Principal instance

        Raises:
            IntegrityError: If the email is already registered
        """
        principal = Principal(
            email=email.lower(),
            password_hash=password_hash,
            role=role,
            display_name=display_name,
        )

        db.add(principal)
        await db.commit()
        await db.refresh(principal)

        logger.info(f"Created principal: {principal.id} ({principal.role.value})")
        return principal

    @staticmethod
    async def get_by_id(db: AsyncSession, principal_id: str | UUID) -> Principal | None:
        """Get a principal by ID."""
        result = await db.execute(select(Principal).where(Principal.id == str(principal_id)))
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_email(db: AsyncSession, email: str) -> Principal | None:
        """Get a principal by email address (case-insensitive)."""
        result = await db.execute(select(Principal).where(Principal.email == email.lower()))
        return result.scalar_one_or_none()

    @staticmethod
    async def email_exists(db: AsyncSession, email: str) -> bool:
        """Check if an email address is already registered."""
        principal = await PrincipalRepository.get_by_email(db, email)
        return principal is not None
