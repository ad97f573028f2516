"""Service layer on the SQLite backend: status codes, flows and audit rows."""

import uuid
from datetime import datetime, timedelta, timezone

import pytest

from family_budget.config import AppConfig
from family_budget.errors import NotFoundError
from family_budget.models import (
    BudgetPeriod,
    BudgetStatus,
    CategoryType,
    Invite,
    InviteStatus,
    ReportPeriod,
    ReportType,
    TransactionType,
    UserRole,
)
from family_budget.models.service_models import (
    BudgetInput,
    CategoryInput,
    TransactionInput,
    UserRegistration,
)
from family_budget.models.transaction import Transaction, TransactionFilter
from family_budget.repositories import create_repositories
from family_budget.services import create_services
from family_budget.utils.time_helpers import utc_now


def march(day):
    return datetime(2026, 3, day, 12, tzinfo=timezone.utc)


def _registration(family_id, email="a@b.com", password="s3cret-pass", role=UserRole.ADMIN):
    return UserRegistration(
        email=email,
        password=password,
        first_name="Anna",
        last_name="Smith",
        role=role,
        family_id=family_id,
    )


def _expense(family, user, category, amount, day=10, kind=TransactionType.EXPENSE):
    return TransactionInput(
        amount=amount,
        type=kind,
        description="Weekly shop",
        category_id=category.id,
        user_id=user.id,
        family_id=family.id,
        date=march(day),
    )


def _audit_actions(sqlite_db):
    rows = sqlite_db.sqlite.execute(
        "SELECT action, entity_type FROM audit_log ORDER BY id"
    ).fetchall()
    return [(row[0], row[1]) for row in rows]


class TestEndToEnd:
    def test_expense_counts_against_category_budget(self, services, month):
        family = services["family_service"].create_family("Smith", "USD")
        assert family.status_code == 201
        family = family.data

        admin = services["user_service"].register_user(_registration(family.id))
        assert admin.status_code == 201
        assert admin.data.role == UserRole.ADMIN

        food = services["category_service"].create_category(CategoryInput(
            name="Food", type=CategoryType.EXPENSE, family_id=family.id,
        ))
        assert food.status_code == 201

        start, end = month
        budget = services["budget_service"].create_budget(BudgetInput(
            name="Food March",
            amount=400,
            period=BudgetPeriod.MONTHLY,
            start_date=start,
            end_date=end,
            family_id=family.id,
            category_id=food.data.id,
        ))
        assert budget.status_code == 201
        assert budget.data.spent == 0

        created = services["transaction_service"].create_transaction(
            _expense(family, admin.data, food.data, 100.50)
        )
        assert created.status_code == 201

        summary = services["budget_service"].get_budget_summary(budget.data.id)
        assert summary.success
        assert summary.data.spent == pytest.approx(100.50)
        assert summary.data.remaining == pytest.approx(299.50)
        assert summary.data.status == BudgetStatus.SAFE
        assert not summary.data.is_over_budget

        stored = services["budget_service"].get_budget(budget.data.id)
        assert stored.data.spent == pytest.approx(100.50)

    def test_budget_follows_updates_and_deletes(self, services, family, admin, food, month):
        start, end = month
        budget = services["budget_service"].create_budget(BudgetInput(
            name="Everything",
            amount=100,
            period=BudgetPeriod.MONTHLY,
            start_date=start,
            end_date=end,
            family_id=family.id,
        )).data
        transactions = services["transaction_service"]
        first = transactions.create_transaction(_expense(family, admin, food, 60)).data
        transactions.create_transaction(_expense(family, admin, food, 30, day=20))
        assert services["budget_service"].get_budget(budget.id).data.spent == 90

        updated = transactions.update_transaction(first.id, family.id, amount=85)
        assert updated.success
        summary = services["budget_service"].get_budget_summary(budget.id).data
        assert summary.spent == 115
        assert summary.status == BudgetStatus.OVER_BUDGET

        assert transactions.delete_transaction(first.id, family.id).success
        assert services["budget_service"].get_budget(budget.id).data.spent == 30

    def test_audit_rows_are_persisted(self, services, sqlite_db):
        family = services["family_service"].create_family("Jones", "EUR").data
        services["user_service"].register_user(_registration(family.id, email="j@x.com"))
        assert _audit_actions(sqlite_db) == [("CREATE", "Family"), ("CREATE", "User")]


class TestFamilyService:
    def test_setup_family(self, services):
        result = services["family_service"].setup_family(
            "Smith", "USD", "a@b.com", "s3cret-pass", "Anna", "Smith",
        )
        assert result.status_code == 201
        admin = result.data
        assert admin.role == UserRole.ADMIN

        categories = services["category_service"].list_categories(admin.family_id).data
        assert len(categories) == 13
        incomes = services["category_service"].list_categories(
            admin.family_id, CategoryType.INCOME
        ).data
        assert {c.name for c in incomes} == {
            "Salary", "Bonus", "Freelance", "Investments", "Other income",
        }

    def test_setup_rolls_back_on_weak_password(self, services, repos):
        result = services["family_service"].setup_family(
            "Smith", "USD", "a@b.com", "short", "Anna", "Smith",
        )
        assert result.status_code == 400
        assert repos["families"].get_all() == []

    def test_setup_rolls_back_on_taken_email(self, services, repos, admin):
        result = services["family_service"].setup_family(
            "Jones", "EUR", "A@B.com", "s3cret-pass", "Ann", "Jones",
        )
        assert result.status_code == 409
        assert [f.name for f in repos["families"].get_all()] == ["Smith"]

    def test_invalid_currency(self, services):
        result = services["family_service"].create_family("Smith", "XYZ")
        assert not result.success
        assert result.status_code == 400

    def test_missing_family(self, services):
        missing = uuid.uuid4()
        assert services["family_service"].get_family(missing).status_code == 404
        assert services["family_service"].delete_family(missing).status_code == 404

    def test_update(self, services, family):
        result = services["family_service"].update_family(family.id, currency="eur")
        assert result.data.currency == "EUR"
        assert result.data.name == "Smith"

    def test_statistics(self, services, family, admin, food, salary):
        transactions = services["transaction_service"]
        transactions.create_transaction(_expense(family, admin, food, 40))
        transactions.create_transaction(
            _expense(family, admin, salary, 1000, kind=TransactionType.INCOME)
        )
        stats = services["family_service"].get_statistics(family.id).data
        assert stats.active_users == 1
        assert stats.transaction_count == 2
        assert stats.balance == 960


class TestUserService:
    def test_register_and_authenticate(self, services, family):
        registered = services["user_service"].register_user(_registration(family.id))
        assert registered.data.password_hash.startswith("pbkdf2_sha256$1000$")
        assert registered.data.last_login is None

        result = services["user_service"].authenticate("A@B.COM", "s3cret-pass")
        assert result.success
        assert result.data.last_login is not None

    @pytest.mark.parametrize(
        "email, password", [("a@b.com", "wrong-pass"), ("nobody@b.com", "s3cret-pass")]
    )
    def test_failed_login_is_401(self, services, family, email, password):
        services["user_service"].register_user(_registration(family.id))
        result = services["user_service"].authenticate(email, password)
        assert result.status_code == 401
        assert result.error == "Invalid email or password."

    def test_weak_password(self, services, family):
        result = services["user_service"].register_user(
            _registration(family.id, password="short")
        )
        assert result.status_code == 400

    def test_duplicate_email(self, services, family, admin):
        result = services["user_service"].register_user(
            _registration(family.id, email="A@b.com")
        )
        assert result.status_code == 409

    def test_bad_email(self, services, family):
        result = services["user_service"].register_user(
            _registration(family.id, email="not-an-email")
        )
        assert result.status_code == 400

    def test_change_role_requires_admin(self, services, admin, make_user):
        member = make_user("m@b.com")
        child = make_user("c@b.com", role=UserRole.CHILD)

        denied = services["user_service"].change_role(child.id, UserRole.ADMIN, member.id)
        assert denied.status_code == 403

        allowed = services["user_service"].change_role(member.id, "child", admin.id)
        assert allowed.success
        assert allowed.data.role == UserRole.CHILD

    def test_change_role_across_families(self, services, admin):
        other = services["family_service"].setup_family(
            "Jones", "EUR", "j@x.com", "s3cret-pass", "Jo", "Jones",
        ).data
        result = services["user_service"].change_role(other.id, "member", admin.id)
        assert result.status_code == 403

    def test_change_role_rejects_unknown_role(self, services, admin, make_user):
        member = make_user("m@b.com")
        result = services["user_service"].change_role(member.id, "owner", admin.id)
        assert result.status_code == 400

    def test_update_password(self, services, family):
        user = services["user_service"].register_user(_registration(family.id)).data
        result = services["user_service"].update_user(user.id, password="another-pass")
        assert result.success
        assert services["user_service"].authenticate("a@b.com", "another-pass").success
        assert services["user_service"].update_user(user.id, password="x").status_code == 400

    def test_deactivate(self, services, family, admin, make_user):
        member = make_user("m@b.com")
        assert services["user_service"].deactivate_user(member.id, family.id).success
        users = services["user_service"].list_family_users(family.id).data
        assert [u.email for u in users] == ["a@b.com"]
        assert services["user_service"].deactivate_user(member.id, family.id).status_code == 404


class TestInviteService:
    def test_accept_flow(self, services, family, admin):
        invites = services["invite_service"]
        created = invites.create_invite(family.id, admin.id, "New@Example.com", "member")
        assert created.status_code == 201
        invite = created.data
        assert invite.email == "new@example.com"
        assert invite.status == InviteStatus.PENDING

        accepted = invites.accept_invite(invite.token, "s3cret-pass", "Nina", "Smith")
        assert accepted.status_code == 201
        user = accepted.data
        assert user.family_id == family.id
        assert user.role == UserRole.MEMBER

        stored = invites.get_invite_by_token(invite.token).data
        assert stored.status == InviteStatus.ACCEPTED
        assert stored.accepted_by == user.id

        again = invites.accept_invite(invite.token, "s3cret-pass", "Nina", "Smith")
        assert again.status_code == 400

    def test_only_admins_invite(self, services, family, make_user):
        member = make_user("m@b.com")
        result = services["invite_service"].create_invite(family.id, member.id, "x@y.com")
        assert result.status_code == 403

    def test_admin_of_other_family_cannot_invite(self, services, family, admin):
        other = services["family_service"].create_family("Jones", "EUR").data
        result = services["invite_service"].create_invite(other.id, admin.id, "x@y.com")
        assert result.status_code == 403

    def test_existing_user_conflict(self, services, family, admin, make_user):
        make_user("m@b.com")
        result = services["invite_service"].create_invite(family.id, admin.id, "M@b.com")
        assert result.status_code == 409

    def test_unknown_inviter(self, services, family):
        result = services["invite_service"].create_invite(family.id, uuid.uuid4(), "x@y.com")
        assert result.status_code == 404

    def test_unknown_token(self, services):
        result = services["invite_service"].accept_invite("f" * 64, "s3cret-pass", "A", "B")
        assert result.status_code == 404

    def test_expired_invite_is_persisted_as_expired(self, services, repos, family, admin):
        invite = repos["invites"].create(Invite.new(
            family_id=family.id,
            created_by=admin.id,
            email="late@example.com",
            role=UserRole.MEMBER,
            validity_days=-1,
        ))
        result = services["invite_service"].accept_invite(
            invite.token, "s3cret-pass", "Late", "Comer",
        )
        assert result.status_code == 400
        assert repos["invites"].get_by_token(invite.token).status == InviteStatus.EXPIRED
        with pytest.raises(NotFoundError):
            repos["users"].get_by_email("late@example.com")

    def test_revoke(self, services, family, admin):
        invites = services["invite_service"]
        invite = invites.create_invite(family.id, admin.id, "x@y.com").data
        assert invites.revoke_invite(invite.id, uuid.uuid4()).status_code == 404

        revoked = invites.revoke_invite(invite.id, family.id)
        assert revoked.data.status == InviteStatus.REVOKED
        assert invites.revoke_invite(invite.id, family.id).status_code == 400
        accepted = invites.accept_invite(invite.token, "s3cret-pass", "X", "Y")
        assert accepted.status_code == 400

    def test_sweep_expired(self, services, family, admin):
        invites = services["invite_service"]
        invites.create_invite(family.id, admin.id, "one@y.com")
        invites.create_invite(family.id, admin.id, "two@y.com")
        assert invites.sweep_expired().data == 0

        later = utc_now() + timedelta(days=8)
        assert invites.sweep_expired(later).data == 2
        assert invites.sweep_expired(later).data == 0
        statuses = {i.status for i in invites.list_family_invites(family.id).data}
        assert statuses == {InviteStatus.EXPIRED}


class TestCategoryService:
    def test_parent_must_match_type(self, services, family, food):
        result = services["category_service"].create_category(CategoryInput(
            name="Bonus", type=CategoryType.INCOME, family_id=family.id, parent_id=food.id,
        ))
        assert result.status_code == 400

    def test_child_category(self, services, family, food):
        result = services["category_service"].create_category(CategoryInput(
            name="Restaurants",
            type=CategoryType.EXPENSE,
            family_id=family.id,
            parent_id=food.id,
            color="#112233",
        ))
        assert result.status_code == 201
        assert result.data.parent_id == food.id
        assert result.data.color == "#112233"

    def test_duplicate_name(self, services, family, food):
        result = services["category_service"].create_category(CategoryInput(
            name="Food", type=CategoryType.EXPENSE, family_id=family.id,
        ))
        assert result.status_code == 409

    def test_bad_color(self, services, family):
        result = services["category_service"].create_category(CategoryInput(
            name="Pets", type=CategoryType.EXPENSE, family_id=family.id, color="blue",
        ))
        assert result.status_code == 400

    def test_update_from_other_family_is_404(self, services, food):
        result = services["category_service"].update_category(
            food.id, uuid.uuid4(), name="Groceries"
        )
        assert result.status_code == 404

    def test_delete(self, services, family, food):
        assert services["category_service"].delete_category(food.id, family.id).success
        assert services["category_service"].get_category(food.id).status_code == 404


class TestTransactionService:
    def test_category_type_must_match(self, services, family, admin, salary):
        result = services["transaction_service"].create_transaction(
            _expense(family, admin, salary, 10)
        )
        assert result.status_code == 400

    def test_category_from_other_family(self, services, family, admin):
        other = services["family_service"].setup_family(
            "Jones", "EUR", "j@x.com", "s3cret-pass", "Jo", "Jones",
        ).data
        groceries = next(
            c for c in services["category_service"].list_categories(other.family_id).data
            if c.name == "Groceries"
        )
        result = services["transaction_service"].create_transaction(
            _expense(family, admin, groceries, 10)
        )
        assert result.status_code == 400

    @pytest.mark.parametrize("amount", [0, -5, 1_000_000_000])
    def test_amount_out_of_range(self, services, family, admin, food, amount):
        result = services["transaction_service"].create_transaction(
            _expense(family, admin, food, amount)
        )
        assert result.status_code == 400

    def test_update_from_other_family_is_404(self, services, family, admin, food):
        created = services["transaction_service"].create_transaction(
            _expense(family, admin, food, 10)
        ).data
        result = services["transaction_service"].update_transaction(
            created.id, uuid.uuid4(), amount=20
        )
        assert result.status_code == 404

    def test_list_and_summary(self, services, family, admin, food, salary, month):
        transactions = services["transaction_service"]
        transactions.create_transaction(_expense(family, admin, food, 25, day=3))
        transactions.create_transaction(_expense(family, admin, food, 75, day=4))
        transactions.create_transaction(
            _expense(family, admin, salary, 500, day=5, kind=TransactionType.INCOME)
        )

        listed = transactions.list_transactions(TransactionFilter(
            family_id=family.id, type=TransactionType.EXPENSE,
        )).data
        assert sorted(t.amount for t in listed) == [25, 75]

        summary = transactions.get_summary(family.id, *month).data
        assert summary.total_count == 3
        assert summary.total_expenses == 100
        assert summary.avg_expense == 50
        assert summary.balance == 400


class TestReportService:
    def test_expense_report(self, services, family, admin, food, salary, month):
        transactions = services["transaction_service"]
        transactions.create_transaction(_expense(family, admin, food, 30, day=2))
        transactions.create_transaction(_expense(family, admin, food, 70, day=2))
        transactions.create_transaction(
            _expense(family, admin, salary, 1000, day=1, kind=TransactionType.INCOME)
        )

        result = services["report_service"].generate_report(
            family.id, admin.id, "March spending", ReportType.EXPENSES,
            ReportPeriod.MONTHLY, *month,
        )
        assert result.status_code == 201
        data = result.data.data
        assert data.total_income == 1000
        assert data.total_expenses == 100
        assert data.net_income == 900
        assert [(c.category_name, c.amount, c.count) for c in data.category_breakdown] == [
            ("Food", 100, 2),
        ]
        assert data.category_breakdown[0].percentage == 100
        assert len(data.daily_breakdown) == 31
        assert data.daily_breakdown[1].expenses == 100
        assert [t.amount for t in data.top_expenses] == [70, 30]

        stored = services["report_service"].get_report(result.data.id).data
        assert stored.data.model_dump() == data.model_dump()

    def _report_services(self, sqlite_db, logger, service_limit, repository_limit):
        repos = create_repositories(
            sqlite_db, logger, AppConfig(MAX_QUERY_LIMIT=repository_limit),
        )
        config = AppConfig(PASSWORD_HASH_ITERATIONS=1_000, MAX_QUERY_LIMIT=service_limit)
        return repos, create_services(sqlite_db, config, repositories=repos)

    @pytest.mark.parametrize("service_limit, repository_limit", [(3, 3), (20, 4)])
    def test_report_reads_every_page(
        self, sqlite_db, logger, family, admin, food, month,
        service_limit, repository_limit,
    ):
        repos, services = self._report_services(
            sqlite_db, logger, service_limit, repository_limit,
        )
        for day in range(1, 11):
            repos["transactions"].create(Transaction(
                amount=1.0,
                type=TransactionType.EXPENSE,
                description="Coffee",
                category_id=food.id,
                user_id=admin.id,
                family_id=family.id,
                date=march(day),
            ))

        result = services["report_service"].generate_report(
            family.id, admin.id, "March", ReportType.EXPENSES,
            ReportPeriod.MONTHLY, *month,
        )
        assert result.status_code == 201
        assert result.data.data.total_expenses == 10
        assert result.data.data.category_breakdown[0].count == 10

    def test_budget_report(self, services, family, admin, food, month):
        start, end = month
        services["budget_service"].create_budget(BudgetInput(
            name="Food", amount=200, period=BudgetPeriod.MONTHLY,
            start_date=start, end_date=end, family_id=family.id, category_id=food.id,
        ))
        services["transaction_service"].create_transaction(_expense(family, admin, food, 50))

        data = services["report_service"].generate_report(
            family.id, admin.id, "Budgets", "budget", "monthly", start, end,
        ).data.data
        assert [(b.planned, b.actual, b.difference, b.percentage) for b in data.budget_comparison] == [
            (200, 50, 150, 25),
        ]

    def test_inverted_range(self, services, family, admin, month):
        start, end = month
        result = services["report_service"].generate_report(
            family.id, admin.id, "Backwards", "expenses", "custom", end, start,
        )
        assert result.status_code == 400

    def test_list_and_delete(self, services, family, admin, month):
        reports = services["report_service"]
        report = reports.generate_report(
            family.id, admin.id, "Flow", "cash_flow", "monthly", *month,
        ).data
        assert [r.id for r in reports.list_reports(family.id).data] == [report.id]
        assert reports.delete_report(report.id, family.id).success
        assert reports.get_report(report.id).status_code == 404
