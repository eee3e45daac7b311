"""
Unit tests for the access grants repository layer.

These tests focus on the status state machine and on update_status
enforcing it.
"""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import IntegrityError

from certvault.modules.access_grants import repository
from certvault.modules.access_grants.models import GrantStatus
from certvault.modules.access_grants.repository import (
    VALID_STATUS_TRANSITIONS,
    InvalidStatusTransitionError,
    is_valid_transition,
)


class TestStatusTransitions:
    """Tests for status transition state machine."""

    def test_pending_can_be_approved_or_denied(self):
        assert VALID_STATUS_TRANSITIONS[GrantStatus.PENDING] == {
            GrantStatus.APPROVED,
            GrantStatus.DENIED,
        }

    def test_approved_can_only_be_revoked(self):
        assert VALID_STATUS_TRANSITIONS[GrantStatus.APPROVED] == {GrantStatus.REVOKED}

    def test_terminal_states_have_no_transitions(self):
        assert VALID_STATUS_TRANSITIONS[GrantStatus.DENIED] == set()
        assert VALID_STATUS_TRANSITIONS[GrantStatus.REVOKED] == set()

    def test_all_statuses_are_in_transition_map(self):
        for status in GrantStatus:
            assert status in VALID_STATUS_TRANSITIONS

    def test_nothing_leads_back_to_pending(self):
        for targets in VALID_STATUS_TRANSITIONS.values():
            assert GrantStatus.PENDING not in targets

    @pytest.mark.parametrize(
        "current,new",
        [
            (GrantStatus.PENDING, GrantStatus.REVOKED),
            (GrantStatus.PENDING, GrantStatus.PENDING),
            (GrantStatus.APPROVED, GrantStatus.APPROVED),
            (GrantStatus.APPROVED, GrantStatus.DENIED),
            (GrantStatus.DENIED, GrantStatus.APPROVED),
            (GrantStatus.REVOKED, GrantStatus.APPROVED),
        ],
    )
    def test_rejected_transitions(self, current, new):
        assert is_valid_transition(current, new) is False


class TestInvalidStatusTransitionError:
    def test_error_message_contains_both_statuses(self):
        error = InvalidStatusTransitionError(GrantStatus.DENIED, GrantStatus.APPROVED)
        assert "denied" in str(error)
        assert "approved" in str(error)

    def test_is_value_error(self):
        assert issubclass(InvalidStatusTransitionError, ValueError)


class TestUpdateStatus:
    @pytest.mark.asyncio
    async def test_applies_transition_and_fields(self, mock_db, make_grant):
        grant = make_grant(GrantStatus.PENDING)
        mock_db.get = AsyncMock(return_value=grant)
        responded = datetime.now(UTC)

        result = await repository.update_status(
            mock_db, grant.id, GrantStatus.APPROVED, response_date=responded
        )

        assert result.status == GrantStatus.APPROVED
        assert result.response_date == responded
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_invalid_transition_leaves_grant_unchanged(self, mock_db, make_grant):
        grant = make_grant(GrantStatus.DENIED)
        mock_db.get = AsyncMock(return_value=grant)

        with pytest.raises(InvalidStatusTransitionError):
            await repository.update_status(mock_db, grant.id, GrantStatus.APPROVED)

        assert grant.status == GrantStatus.DENIED
        mock_db.commit.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_grant(self, mock_db):
        mock_db.get = AsyncMock(return_value=None)

        with pytest.raises(ValueError, match="not found"):
            await repository.update_status(mock_db, "missing", GrantStatus.APPROVED)


class TestCreate:
    @pytest.mark.asyncio
    async def test_creates_pending_grant_with_copied_names(
        self, mock_db, company, student_record
    ):
        grant = await repository.create(
            mock_db,
            company_id=company.id,
            company_name="Acme Corp",
            company_email=company.email,
            student=student_record,
            message="Hello",
        )

        assert grant.status == GrantStatus.PENDING
        assert grant.student_name == student_record.name
        assert grant.student_email == student_record.email
        assert grant.request_date is not None
        assert grant.response_date is None
        mock_db.add.assert_called_once_with(grant)

    @pytest.mark.asyncio
    async def test_unique_violation_rolls_back_and_propagates(
        self, mock_db, company, student_record
    ):
        mock_db.commit = AsyncMock(
            side_effect=IntegrityError("INSERT", {}, Exception("uq_access_grants_pending_pair"))
        )

        with pytest.raises(IntegrityError):
            await repository.create(
                mock_db,
                company_id=company.id,
                company_name="Acme Corp",
                company_email=company.email,
                student=student_record,
                message=None,
            )

        mock_db.rollback.assert_awaited_once()
        mock_db.refresh.assert_not_called()


class TestCountByStatus:
    @pytest.mark.asyncio
    async def test_zero_fills_missing_statuses(self, mock_db, company):
        result = MagicMock()
        result.all.return_value = [(GrantStatus.PENDING, 2), (GrantStatus.REVOKED, 1)]
        mock_db.execute = AsyncMock(return_value=result)

        counts = await repository.count_by_status_for_company(mock_db, company.id)

        assert counts == {
            GrantStatus.PENDING: 2,
            GrantStatus.APPROVED: 0,
            GrantStatus.DENIED: 0,
            GrantStatus.REVOKED: 1,
        }

    @pytest.mark.asyncio
    async def test_empty_student_list_skips_query(self, mock_db):
        assert await repository.count_pending_for_students(mock_db, []) == 0
        assert await repository.list_by_students(mock_db, []) == []
        mock_db.execute.assert_not_called()
