"""SQLite repositories against an in-memory database with the real schema."""

import uuid
from datetime import datetime, timedelta, timezone

import pytest

from family_budget.errors import ConflictError, InvalidInputError, NotFoundError
from family_budget.models import (
    Budget,
    BudgetPeriod,
    Category,
    CategoryReportItem,
    CategoryType,
    Family,
    Invite,
    InviteStatus,
    Report,
    ReportData,
    ReportPeriod,
    ReportType,
    Transaction,
    TransactionFilter,
    TransactionType,
    UserRole,
)
from family_budget.utils.time_helpers import utc_now

MARCH = datetime(2026, 3, 1, tzinfo=timezone.utc)


def march(day, hour=12):
    return MARCH.replace(day=day, hour=hour)


@pytest.fixture
def add_transaction(repos, family, admin, food):
    def factory(amount, day, kind=TransactionType.EXPENSE, category=None,
                description="Groceries", tags=(), user=None):
        return repos["transactions"].create(Transaction(
            amount=amount,
            type=kind,
            description=description,
            category_id=(category or food).id,
            user_id=(user or admin).id,
            family_id=family.id,
            date=march(day),
            tags=list(tags),
        ))
    return factory


def _backdate(sqlite_db, table, row_id, stamp):
    """Rows created within one millisecond tie on created_at; force an order."""
    sqlite_db.sqlite.execute(
        f"UPDATE {table} SET created_at = ? WHERE id = ?", (stamp, str(row_id))
    )
    sqlite_db.sqlite.commit()


def _budget(family, month, name="March", category=None, amount=500):
    start, end = month
    return Budget(
        name=name,
        amount=amount,
        period=BudgetPeriod.MONTHLY,
        category_id=category.id if category else None,
        start_date=start,
        end_date=end,
        family_id=family.id,
    )


class TestFamilyRepository:
    def test_create_then_get(self, repos):
        created = repos["families"].create(Family(name="  Smith ", currency="usd"))
        assert created.name == "Smith"
        assert created.currency == "USD"
        assert created.created_at is not None
        assert repos["families"].get_by_id(created.id) == created
        assert repos["families"].get_by_id(str(created.id)) == created

    def test_invalid_currency(self, repos):
        with pytest.raises(InvalidInputError):
            repos["families"].create(Family(name="Smith", currency="BTC"))

    def test_missing(self, repos):
        missing = uuid.uuid4()
        with pytest.raises(NotFoundError):
            repos["families"].get_by_id(missing)
        with pytest.raises(NotFoundError):
            repos["families"].update(Family(id=missing, name="Ghost", currency="EUR"))
        with pytest.raises(NotFoundError):
            repos["families"].delete(missing)

    def test_update(self, repos, family):
        updated = repos["families"].update(
            family.model_copy(update={"name": "Smith-Jones", "currency": "EUR"})
        )
        assert (updated.name, updated.currency) == ("Smith-Jones", "EUR")
        assert updated.updated_at >= family.updated_at

    def test_get_single_picks_oldest(self, repos, sqlite_db):
        with pytest.raises(NotFoundError):
            repos["families"].get_single()
        repos["families"].create(Family(name="Second"))
        first = repos["families"].create(Family(name="First"))
        _backdate(sqlite_db, "families", first.id, "2020-01-01T00:00:00.000000Z")
        assert repos["families"].get_single().id == first.id

    def test_get_all_paginates(self, repos, sqlite_db):
        names = ["One", "Two", "Three"]
        for position, name in enumerate(names):
            created = repos["families"].create(Family(name=name))
            _backdate(sqlite_db, "families", created.id, f"2020-01-0{position + 1}T00:00:00.000000Z")
        assert [f.name for f in repos["families"].get_all()] == names
        assert [f.name for f in repos["families"].get_all(limit=1, offset=1)] == ["Two"]

    def test_delete_cascades(self, repos, family, admin, food, add_transaction, month):
        add_transaction(10, 5)
        invite = repos["invites"].create(Invite.new(
            family_id=family.id, created_by=admin.id,
            email="guest@example.com", role=UserRole.MEMBER,
        ))
        budget = repos["budgets"].create(_budget(family, month))

        repos["families"].delete(family.id)

        with pytest.raises(NotFoundError):
            repos["families"].get_by_id(family.id)
        with pytest.raises(NotFoundError):
            repos["users"].get_by_id(admin.id)
        with pytest.raises(NotFoundError):
            repos["invites"].get_by_id(invite.id)
        with pytest.raises(NotFoundError):
            repos["budgets"].get_by_id(budget.id)
        assert repos["transactions"].get_by_family_id(family.id) == []
        assert repos["categories"].get_by_family_id(family.id) == []

    def test_statistics(self, repos, family, admin, food, salary, add_transaction):
        add_transaction(100.50, 3)
        add_transaction(1000, 1, kind=TransactionType.INCOME, category=salary)
        stats = repos["families"].get_statistics(family.id)
        assert stats.active_users == 1
        assert stats.active_categories == 2
        assert stats.transaction_count == 2
        assert stats.active_budgets == 0
        assert stats.total_income == 1000
        assert stats.total_expenses == 100.50
        assert stats.balance == pytest.approx(899.50)

    def test_statistics_for_missing_family(self, repos):
        with pytest.raises(NotFoundError):
            repos["families"].get_statistics(uuid.uuid4())


class TestUserRepository:
    def test_round_trip(self, repos, admin):
        assert repos["users"].get_by_id(admin.id) == admin
        assert admin.role == UserRole.ADMIN

    def test_email_lookup_ignores_case(self, repos, admin):
        assert repos["users"].get_by_email("A@B.COM").id == admin.id

    def test_duplicate_email_in_other_case(self, make_user, admin):
        with pytest.raises(ConflictError) as excinfo:
            make_user("A@B.com")
        assert excinfo.value.status_code == 409

    def test_deactivated_email_can_register_again(self, repos, family, admin, make_user):
        repos["users"].delete(admin.id, family.id)
        with pytest.raises(NotFoundError):
            repos["users"].get_by_id(admin.id)
        with pytest.raises(NotFoundError):
            repos["users"].get_by_email("a@b.com")
        replacement = make_user("a@b.com", role=UserRole.ADMIN)
        assert repos["users"].get_by_email("a@b.com").id == replacement.id

    def test_delete_twice(self, repos, family, admin):
        repos["users"].delete(admin.id, family.id)
        with pytest.raises(NotFoundError):
            repos["users"].delete(admin.id, family.id)

    def test_delete_requires_matching_family(self, repos, admin):
        with pytest.raises(NotFoundError):
            repos["users"].delete(admin.id, uuid.uuid4())

    def test_by_family_and_role(self, repos, family, admin, make_user):
        kid = make_user("kid@example.com", role=UserRole.CHILD)
        partner = make_user("partner@example.com")
        assert {u.id for u in repos["users"].get_by_family_id(family.id)} == {
            admin.id, kid.id, partner.id,
        }
        assert [u.id for u in repos["users"].get_by_role(family.id, "child")] == [kid.id]
        with pytest.raises(InvalidInputError):
            repos["users"].get_by_role(family.id, "owner")

    def test_update(self, repos, admin):
        updated = repos["users"].update(
            admin.model_copy(update={"first_name": "Annie", "role": UserRole.MEMBER})
        )
        assert updated.first_name == "Annie"
        assert updated.role == UserRole.MEMBER

    def test_update_to_taken_email(self, repos, admin, make_user):
        other = make_user("other@example.com")
        with pytest.raises(ConflictError):
            repos["users"].update(other.model_copy(update={"email": "a@b.com"}))

    def test_last_login(self, repos, admin):
        assert admin.last_login is None
        repos["users"].update_last_login(admin.id)
        assert repos["users"].get_by_id(admin.id).last_login is not None
        with pytest.raises(NotFoundError):
            repos["users"].update_last_login(uuid.uuid4())

    def test_empty_password_hash(self, repos, admin):
        with pytest.raises(InvalidInputError):
            repos["users"].update(admin.model_copy(update={"password_hash": "  "}))


class TestInviteRepository:
    @pytest.fixture
    def invite_for(self, repos, family, admin):
        def factory(email="guest@example.com", validity_days=7):
            return repos["invites"].create(Invite.new(
                family_id=family.id,
                created_by=admin.id,
                email=email,
                role=UserRole.MEMBER,
                validity_days=validity_days,
            ))
        return factory

    def test_create_then_get(self, repos, invite_for):
        invite = invite_for("Guest@Example.com")
        assert invite.email == "guest@example.com"
        assert repos["invites"].get_by_id(invite.id) == invite
        assert repos["invites"].get_by_token(invite.token) == invite

    def test_unknown_token(self, repos):
        with pytest.raises(NotFoundError):
            repos["invites"].get_by_token("f" * 64)
        with pytest.raises(InvalidInputError):
            repos["invites"].get_by_token("  ")

    def test_duplicate_token(self, repos, family, admin, invite_for):
        first = invite_for()
        clash = Invite.new(
            family_id=family.id, created_by=admin.id,
            email="someone@example.com", role=UserRole.CHILD,
        ).model_copy(update={"token": first.token})
        with pytest.raises(ConflictError):
            repos["invites"].create(clash)

    def test_accept_persists(self, repos, admin, invite_for):
        invite = invite_for()
        invite.accept(admin.id)
        stored = repos["invites"].update(invite)
        assert stored.status == InviteStatus.ACCEPTED
        assert stored.accepted_by == admin.id
        assert stored.accepted_at is not None

    def test_update_missing(self, repos, family, admin):
        with pytest.raises(NotFoundError):
            repos["invites"].update(Invite.new(
                family_id=family.id, created_by=admin.id,
                email="nobody@example.com", role=UserRole.MEMBER,
            ))

    def test_pending_by_email_and_family(self, repos, family, admin, invite_for):
        older = invite_for()
        newer = invite_for()
        revoked = invite_for()
        revoked.revoke()
        repos["invites"].update(revoked)

        pending = repos["invites"].get_pending_by_email("GUEST@example.com")
        assert {i.id for i in pending} == {older.id, newer.id}
        assert len(repos["invites"].get_by_family(family.id)) == 3

    def test_mark_expired_bulk_counts_exactly(self, repos, admin, invite_for):
        stale = [invite_for(validity_days=-1), invite_for(validity_days=-2)]
        fresh = invite_for(validity_days=3)
        accepted = invite_for(validity_days=-1)
        accepted.accept(admin.id)
        repos["invites"].update(accepted)

        assert repos["invites"].mark_expired_bulk() == 2
        assert repos["invites"].mark_expired_bulk() == 0

        for invite in stale:
            assert repos["invites"].get_by_id(invite.id).status == InviteStatus.EXPIRED
        assert repos["invites"].get_by_id(fresh.id).status == InviteStatus.PENDING
        assert repos["invites"].get_by_id(accepted.id).status == InviteStatus.ACCEPTED

    def test_mark_expired_bulk_with_future_clock(self, repos, invite_for):
        invite_for(validity_days=3)
        assert repos["invites"].mark_expired_bulk(utc_now() + timedelta(days=4)) == 1

    def test_delete_expired(self, repos, invite_for):
        stale = invite_for(validity_days=-1)
        fresh = invite_for(validity_days=1)
        assert repos["invites"].delete_expired() == 1
        with pytest.raises(NotFoundError):
            repos["invites"].get_by_id(stale.id)
        assert repos["invites"].get_by_id(fresh.id).status == InviteStatus.PENDING

    def test_delete(self, repos, invite_for):
        invite = invite_for()
        repos["invites"].delete(invite.id)
        with pytest.raises(NotFoundError):
            repos["invites"].delete(invite.id)


class TestCategoryRepository:
    def test_round_trip_with_defaults(self, repos, food):
        stored = repos["categories"].get_by_id(food.id)
        assert stored == food
        assert stored.color == "#007BFF"
        assert stored.icon == "default"

    def test_duplicate_top_level_name(self, repos, family, food):
        with pytest.raises(ConflictError):
            repos["categories"].create(Category(
                name="Food", type=CategoryType.EXPENSE, family_id=family.id,
            ))

    def test_same_name_other_type_is_allowed(self, repos, family, food):
        income_food = repos["categories"].create(Category(
            name="Food", type=CategoryType.INCOME, family_id=family.id,
        ))
        assert income_food.type == CategoryType.INCOME

    def test_duplicate_child_name(self, repos, family, food):
        child = Category(
            name="Groceries", type=CategoryType.EXPENSE,
            family_id=family.id, parent_id=food.id,
        )
        repos["categories"].create(child)
        with pytest.raises(ConflictError):
            repos["categories"].create(child.model_copy(update={"id": uuid.uuid4()}))

    def test_cannot_be_own_parent(self, repos, food):
        with pytest.raises(InvalidInputError):
            repos["categories"].update(food.model_copy(update={"parent_id": food.id}))

    def _child(self, parent, name, category_type=CategoryType.EXPENSE, family_id=None):
        return Category(
            name=name,
            type=category_type,
            family_id=family_id or parent.family_id,
            parent_id=parent.id,
        )

    def test_cycle_through_descendants_is_rejected(self, repos, food):
        child = repos["categories"].create(self._child(food, "Groceries"))
        grandchild = repos["categories"].create(self._child(child, "Fruit"))

        with pytest.raises(InvalidInputError, match="circular"):
            repos["categories"].update(food.model_copy(update={"parent_id": grandchild.id}))
        with pytest.raises(InvalidInputError, match="circular"):
            repos["categories"].update(food.model_copy(update={"parent_id": child.id}))
        assert repos["categories"].get_by_id(food.id).parent_id is None

    def test_reparenting_within_the_tree(self, repos, family, food):
        child = repos["categories"].create(self._child(food, "Groceries"))
        other = repos["categories"].create(Category(
            name="Household", type=CategoryType.EXPENSE, family_id=family.id,
        ))
        moved = repos["categories"].update(child.model_copy(update={"parent_id": other.id}))
        assert moved.parent_id == other.id

    def test_parent_from_another_family(self, repos, food):
        jones = repos["families"].create(Family(name="Jones", currency="EUR"))
        with pytest.raises(InvalidInputError, match="another family"):
            repos["categories"].create(self._child(food, "Snacks", family_id=jones.id))

    def test_parent_of_another_type(self, repos, food):
        with pytest.raises(InvalidInputError, match="different type"):
            repos["categories"].create(self._child(food, "Refunds", CategoryType.INCOME))

    def test_missing_or_inactive_parent(self, repos, family, food):
        orphan = Category(
            name="Snacks", type=CategoryType.EXPENSE,
            family_id=family.id, parent_id=uuid.uuid4(),
        )
        with pytest.raises(InvalidInputError, match="not found"):
            repos["categories"].create(orphan)

        repos["categories"].delete(food.id, family.id)
        with pytest.raises(InvalidInputError, match="not active"):
            repos["categories"].create(self._child(food, "Snacks"))

    def test_bad_color(self, repos, food):
        with pytest.raises(InvalidInputError):
            repos["categories"].update(food.model_copy(update={"color": "green"}))

    def test_delete_with_children_conflicts(self, repos, family, food):
        child = repos["categories"].create(Category(
            name="Groceries", type=CategoryType.EXPENSE,
            family_id=family.id, parent_id=food.id,
        ))
        assert [c.id for c in repos["categories"].get_children(food.id)] == [child.id]

        with pytest.raises(ConflictError):
            repos["categories"].delete(food.id, family.id)

        repos["categories"].delete(child.id, family.id)
        repos["categories"].delete(food.id, family.id)
        with pytest.raises(NotFoundError):
            repos["categories"].get_by_id(food.id)
        with pytest.raises(NotFoundError):
            repos["categories"].delete(food.id, family.id)

    def test_listing(self, repos, family, food, salary):
        assert [c.name for c in repos["categories"].get_by_family_id(family.id)] == [
            "Food", "Salary",
        ]
        assert [c.id for c in repos["categories"].get_by_type(family.id, "income")] == [
            salary.id,
        ]

    def test_update(self, repos, food):
        updated = repos["categories"].update(
            food.model_copy(update={"name": "Eating out", "color": "#FF0000", "icon": "fork"})
        )
        assert (updated.name, updated.color, updated.icon) == ("Eating out", "#FF0000", "fork")

    def test_update_missing(self, repos, family):
        with pytest.raises(NotFoundError):
            repos["categories"].update(Category(
                name="Ghost", type=CategoryType.EXPENSE, family_id=family.id,
            ))


class TestTransactionRepository:
    def test_round_trip(self, repos, add_transaction):
        created = add_transaction(100.50, 3, tags=[" weekly ", "weekly", "", "market"])
        assert created.tags == ["weekly", "market"]
        assert repos["transactions"].get_by_id(created.id) == created

    @pytest.mark.parametrize("amount", [0, -1, 1_000_000_000])
    def test_invalid_amount(self, add_transaction, amount):
        with pytest.raises(InvalidInputError):
            add_transaction(amount, 3)

    def test_missing(self, repos, family, admin, food):
        missing = Transaction(
            amount=1, type=TransactionType.EXPENSE, description="x",
            category_id=food.id, user_id=admin.id, family_id=family.id,
            date=march(1),
        )
        with pytest.raises(NotFoundError):
            repos["transactions"].get_by_id(missing.id)
        with pytest.raises(NotFoundError):
            repos["transactions"].update(missing)
        with pytest.raises(NotFoundError):
            repos["transactions"].delete(missing.id, family.id)

    def test_update_and_delete(self, repos, family, add_transaction):
        created = add_transaction(20, 3)
        updated = repos["transactions"].update(
            created.model_copy(update={"amount": 25.75, "tags": ["fixed"]})
        )
        assert updated.amount == 25.75
        assert updated.tags == ["fixed"]
        repos["transactions"].delete(created.id, family.id)
        with pytest.raises(NotFoundError):
            repos["transactions"].get_by_id(created.id)

    def test_newest_first(self, repos, family, add_transaction):
        first = add_transaction(1, 1)
        third = add_transaction(3, 20)
        second = add_transaction(2, 10)
        listed = repos["transactions"].get_by_family_id(family.id)
        assert [t.id for t in listed] == [third.id, second.id, first.id]
        page = repos["transactions"].get_by_family_id(family.id, limit=1, offset=1)
        assert [t.id for t in page] == [second.id]

    def test_filter(self, repos, family, salary, make_user, add_transaction):
        partner = make_user("partner@example.com")
        market = add_transaction(45, 2, description="Weekly MARKET run", tags=["market"])
        add_transaction(300, 9, description="Rent share", tags=["home"], user=partner)
        pay = add_transaction(
            2000, 15, kind=TransactionType.INCOME, category=salary, description="Pay"
        )
        by = repos["transactions"].get_by_filter

        assert [t.id for t in by(TransactionFilter(
            family_id=family.id, description="market"))] == [market.id]
        assert [t.id for t in by(TransactionFilter(
            family_id=family.id, tags=["market", "nothing"]))] == [market.id]
        assert [t.id for t in by(TransactionFilter(
            family_id=family.id, type=TransactionType.INCOME))] == [pay.id]
        assert len(by(TransactionFilter(family_id=family.id, user_id=partner.id))) == 1
        assert len(by(TransactionFilter(
            family_id=family.id, amount_from=45, amount_to=300))) == 2
        assert len(by(TransactionFilter(
            family_id=family.id, date_from=march(2), date_to=march(9)))) == 2

    def test_filter_treats_like_wildcards_literally(self, repos, family, add_transaction):
        add_transaction(5, 2, description="Snacks")
        assert repos["transactions"].get_by_filter(
            TransactionFilter(family_id=family.id, description="%")
        ) == []

    def test_filter_rejects_inverted_ranges(self, repos, family):
        with pytest.raises(InvalidInputError):
            repos["transactions"].get_by_filter(
                TransactionFilter(family_id=family.id, amount_from=10, amount_to=1)
            )
        with pytest.raises(InvalidInputError):
            repos["transactions"].get_by_filter(
                TransactionFilter(family_id=family.id, date_from=march(5), date_to=march(1))
            )

    def test_totals_and_summary(self, repos, family, food, salary, add_transaction, month):
        add_transaction(100.50, 3)
        add_transaction(20, 31)
        add_transaction(1000, 1, kind=TransactionType.INCOME, category=salary)
        start, end = month

        tx = repos["transactions"]
        assert tx.get_total_by_category(food.id, "expense") == pytest.approx(120.50)
        assert tx.get_total_by_category(food.id, "income") == 0.0
        assert tx.get_total_by_family_and_date_range(
            family.id, start, march(3), TransactionType.EXPENSE
        ) == pytest.approx(100.50)
        assert tx.get_total_by_category_and_date_range(
            food.id, start, end, TransactionType.EXPENSE
        ) == pytest.approx(120.50)

        summary = tx.get_summary(family.id, start, end)
        assert summary.total_count == 3
        assert summary.expense_count == 2
        assert summary.income_count == 1
        assert summary.total_income == 1000
        assert summary.balance == pytest.approx(879.50)

    def test_range_is_inclusive(self, repos, family, add_transaction):
        created = add_transaction(7, 4)
        assert repos["transactions"].get_total_by_family_and_date_range(
            family.id, created.date, created.date, "expense"
        ) == 7


class TestBudgetRepository:
    def test_round_trip(self, repos, family, month):
        budget = repos["budgets"].create(_budget(family, month))
        assert repos["budgets"].get_by_id(budget.id) == budget
        assert budget.spent == 0

    def test_duplicate_name_and_range(self, repos, family, month):
        repos["budgets"].create(_budget(family, month))
        with pytest.raises(ConflictError):
            repos["budgets"].create(_budget(family, month, amount=900))

    def test_end_before_start(self, repos, family, month):
        start, end = month
        with pytest.raises(InvalidInputError):
            repos["budgets"].create(_budget(family, (end, start)))

    def test_active_budgets(self, repos, family, month):
        march_budget = repos["budgets"].create(_budget(family, month))
        april = (month[1] + timedelta(microseconds=1), month[1] + timedelta(days=30))
        repos["budgets"].create(_budget(family, april, name="April"))

        active = repos["budgets"].get_active_budgets(family.id, at=march(15))
        assert [b.id for b in active] == [march_budget.id]
        assert len(repos["budgets"].get_by_family_id(family.id)) == 2

    def test_find_affected_by_transaction(self, repos, family, food, salary, month):
        overall = repos["budgets"].create(_budget(family, month, name="Everything"))
        groceries = repos["budgets"].create(_budget(family, month, name="Food", category=food))
        find = repos["budgets"].find_affected_by_transaction

        assert set(find(family.id, food.id, march(10))) == {overall.id, groceries.id}
        assert find(family.id, salary.id, march(10)) == [overall.id]
        assert find(family.id, None, march(10)) == [overall.id]
        assert find(family.id, food.id, march(1) - timedelta(days=1)) == []

    def test_update_spent_amount(self, repos, family, month):
        budget = repos["budgets"].create(_budget(family, month))
        repos["budgets"].update_spent_amount(budget.id, 100.50)
        assert repos["budgets"].get_by_id(budget.id).spent == 100.50
        with pytest.raises(InvalidInputError):
            repos["budgets"].update_spent_amount(budget.id, -1)
        with pytest.raises(NotFoundError):
            repos["budgets"].update_spent_amount(uuid.uuid4(), 1)

    def test_soft_delete(self, repos, family, month):
        budget = repos["budgets"].create(_budget(family, month))
        repos["budgets"].delete(budget.id, family.id)
        with pytest.raises(NotFoundError):
            repos["budgets"].get_by_id(budget.id)
        with pytest.raises(NotFoundError):
            repos["budgets"].update(budget)
        assert repos["budgets"].get_by_family_id(family.id) == []


class TestReportRepository:
    def _report(self, family, admin, food, month):
        start, end = month
        return Report(
            name="March expenses",
            type=ReportType.EXPENSES,
            period=ReportPeriod.MONTHLY,
            family_id=family.id,
            user_id=admin.id,
            start_date=start,
            end_date=end,
            data=ReportData(
                total_expenses=100.50,
                net_income=-100.50,
                category_breakdown=[CategoryReportItem(
                    category_id=food.id, category_name="Food",
                    amount=100.50, percentage=100.0, count=1,
                )],
            ),
        )

    def test_round_trip(self, repos, family, admin, food, month):
        report = repos["reports"].create(self._report(family, admin, food, month))
        assert report.generated_at is not None
        stored = repos["reports"].get_by_id(report.id)
        assert stored == report
        assert stored.data.category_breakdown[0].category_name == "Food"

    def test_listing_and_delete(self, repos, family, admin, food, month):
        report = repos["reports"].create(self._report(family, admin, food, month))
        assert [r.id for r in repos["reports"].get_by_family_id(family.id)] == [report.id]
        assert [r.id for r in repos["reports"].get_by_user_id(admin.id)] == [report.id]
        repos["reports"].delete(report.id, family.id)
        with pytest.raises(NotFoundError):
            repos["reports"].get_by_id(report.id)
        with pytest.raises(NotFoundError):
            repos["reports"].delete(report.id, family.id)

    def test_invalid_range(self, repos, family, admin, food, month):
        start, end = month
        report = self._report(family, admin, food, month).model_copy(
            update={"start_date": end, "end_date": start}
        )
        with pytest.raises(InvalidInputError):
            repos["reports"].create(report)
