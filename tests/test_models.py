"""Domain models: the invite state machine, budget arithmetic and helpers."""

import re
import uuid
from datetime import datetime, timedelta, timezone

import pytest

from family_budget.errors import InvalidInputError
from family_budget.models import (
    Budget,
    BudgetPeriod,
    BudgetStatus,
    FamilyStatistics,
    Invite,
    InviteStatus,
    Transaction,
    TransactionSummary,
    TransactionType,
    UserRole,
    budget_status,
)
from family_budget.utils.security import (
    generate_invite_token,
    hash_password,
    verify_password,
)
from family_budget.utils.time_helpers import (
    from_db_timestamp,
    to_db_timestamp,
    to_utc,
    utc_now,
)


def _invite(**overrides):
    fields = dict(
        family_id=uuid.uuid4(),
        created_by=uuid.uuid4(),
        email="new.member@example.com",
        role=UserRole.MEMBER,
    )
    fields.update(overrides)
    return Invite.new(**fields)


class TestInviteLifecycle:
    def test_new_invite_is_pending_and_valid(self):
        invite = _invite(validity_days=3)
        assert invite.status == InviteStatus.PENDING
        assert invite.is_valid()
        assert re.fullmatch(r"[0-9a-f]{64}", invite.token)
        remaining = invite.expires_at - utc_now()
        assert timedelta(days=2, hours=23) < remaining <= timedelta(days=3)

    def test_accept(self):
        invite = _invite()
        user_id = uuid.uuid4()
        invite.accept(user_id)
        assert invite.status == InviteStatus.ACCEPTED
        assert invite.accepted_by == user_id
        assert invite.accepted_at is not None
        assert not invite.is_valid()

    def test_revoke(self):
        invite = _invite()
        invite.revoke()
        assert invite.status == InviteStatus.REVOKED

    def test_mark_expired(self):
        invite = _invite()
        invite.mark_expired()
        assert invite.status == InviteStatus.EXPIRED

    @pytest.mark.parametrize("first", ["accept", "revoke", "mark_expired"])
    @pytest.mark.parametrize("second", ["accept", "revoke", "mark_expired"])
    def test_terminal_states_reject_transitions(self, first, second):
        invite = _invite()
        args = (uuid.uuid4(),)
        getattr(invite, first)(*args[: first == "accept"])
        status = invite.status
        with pytest.raises(InvalidInputError):
            getattr(invite, second)(*args[: second == "accept"])
        assert invite.status == status

    def test_expiry_uses_supplied_clock(self):
        invite = _invite(validity_days=1)
        later = utc_now() + timedelta(days=2)
        assert invite.is_expired(later)
        assert not invite.is_valid(later)
        assert invite.status == InviteStatus.PENDING

    def test_tokens_are_unique(self):
        assert len({generate_invite_token() for _ in range(50)}) == 50


class TestBudgetStatus:
    @pytest.mark.parametrize(
        "spent, expected",
        [
            (0, BudgetStatus.SAFE),
            (50, BudgetStatus.SAFE),
            (50.01, BudgetStatus.ON_TRACK),
            (80, BudgetStatus.ON_TRACK),
            (80.01, BudgetStatus.WARNING),
            (100, BudgetStatus.WARNING),
            (100.01, BudgetStatus.OVER_BUDGET),
        ],
    )
    def test_thresholds(self, spent, expected):
        assert budget_status(spent, 100) == expected

    def test_budget_properties(self):
        start = datetime(2026, 1, 1, tzinfo=timezone.utc)
        budget = Budget(
            name="Groceries",
            amount=200,
            spent=150,
            period=BudgetPeriod.MONTHLY,
            start_date=start,
            end_date=start + timedelta(days=30),
            family_id=uuid.uuid4(),
        )
        assert budget.remaining == 50
        assert budget.spent_percentage == 75
        assert not budget.is_over_budget
        assert budget.model_copy(update={"spent": 201}).is_over_budget


class TestAggregates:
    def test_transaction_summary(self):
        summary = TransactionSummary(
            total_count=5,
            income_count=2,
            expense_count=3,
            total_income=1000,
            total_expenses=300,
        )
        assert summary.balance == 700
        assert summary.avg_income == 500
        assert summary.avg_expense == 100

    def test_empty_summary_averages(self):
        summary = TransactionSummary()
        assert summary.avg_income == 0.0
        assert summary.avg_expense == 0.0

    def test_family_statistics_balance(self):
        stats = FamilyStatistics(family_id=uuid.uuid4(), total_income=10, total_expenses=4)
        assert stats.balance == 6

    def test_transaction_tags(self):
        transaction = Transaction(
            amount=5,
            type=TransactionType.EXPENSE,
            description="Coffee",
            category_id=uuid.uuid4(),
            user_id=uuid.uuid4(),
            family_id=uuid.uuid4(),
            date=utc_now(),
        )
        transaction.add_tag("cafe")
        transaction.add_tag("cafe")
        transaction.add_tag("work")
        assert transaction.tags == ["cafe", "work"]
        transaction.remove_tag("cafe")
        assert transaction.tags == ["work"]


class TestSecurity:
    def test_hash_and_verify(self):
        stored = hash_password("correct horse", iterations=1_000)
        assert stored.startswith("pbkdf2_sha256$1000$")
        assert verify_password("correct horse", stored)
        assert not verify_password("wrong horse", stored)

    def test_salted(self):
        assert hash_password("password1", 1_000) != hash_password("password1", 1_000)

    def test_short_password(self):
        with pytest.raises(ValueError):
            hash_password("short")

    @pytest.mark.parametrize("stored", ["", "plain", "md5$1$00$00", "pbkdf2_sha256$x$00$00"])
    def test_malformed_hash(self, stored):
        assert verify_password("anything", stored) is False


class TestTimestamps:
    def test_round_trip(self):
        value = datetime(2026, 3, 14, 15, 9, 26, 535000, tzinfo=timezone.utc)
        text = to_db_timestamp(value)
        assert text == "2026-03-14T15:09:26.535000Z"
        assert from_db_timestamp(text) == value

    def test_text_orders_chronologically(self):
        earlier = datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        later = earlier + timedelta(microseconds=1)
        assert to_db_timestamp(earlier) < to_db_timestamp(later)

    def test_naive_is_treated_as_utc(self):
        assert to_utc(datetime(2026, 1, 1)).tzinfo == timezone.utc

    def test_parses_iso_offsets(self):
        parsed = from_db_timestamp("2026-01-01T02:00:00+02:00")
        assert parsed == datetime(2026, 1, 1, tzinfo=timezone.utc)

    def test_empty(self):
        assert from_db_timestamp(None) is None
        assert from_db_timestamp("") is None
        assert to_db_timestamp(None) is None

    def test_utc_now_is_millisecond_precision(self):
        assert utc_now().microsecond % 1000 == 0
