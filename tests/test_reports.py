from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable

from peerledger.database import Database
from peerledger.matching import request_match, transition_match
from peerledger.models import Expense, ExpenseCategory, ExpenseStatus, User
from peerledger.reports import skill_dashboard, summarize_expenses


def _expense(
    expense_id: int,
    amount: str,
    category: ExpenseCategory,
    status: ExpenseStatus,
    created: datetime,
) -> Expense:
    return Expense(
        id=expense_id,
        user_id=1,
        title=f"Expense {expense_id}",
        amount=Decimal(amount),
        category=category,
        status=status,
        created_at=created,
        updated_at=created,
    )


EXPENSES = [
    _expense(1, "100.00", ExpenseCategory.TRAVEL, ExpenseStatus.APPROVED, datetime(2024, 1, 15, tzinfo=timezone.utc)),
    _expense(2, "50.00", ExpenseCategory.MEALS, ExpenseStatus.REJECTED, datetime(2024, 1, 20, tzinfo=timezone.utc)),
    _expense(3, "25.50", ExpenseCategory.TRAVEL, ExpenseStatus.PENDING, datetime(2024, 2, 3, tzinfo=timezone.utc)),
    _expense(4, "10.00", ExpenseCategory.OTHER, ExpenseStatus.SUBMITTED, datetime(2024, 3, 1, tzinfo=timezone.utc)),
]


def test_summary_totals_and_rates() -> None:
    summary = summarize_expenses(EXPENSES)

    assert summary.count == 4
    assert summary.total_amount == Decimal("185.50")
    assert summary.approved_count == 1
    assert summary.approved_amount == Decimal("100.00")
    assert summary.average_amount == Decimal("46.38")
    assert summary.approval_rate == 25
    assert summary.processed_rate == 50


def test_summary_breakdowns() -> None:
    summary = summarize_expenses(EXPENSES)

    assert summary.by_category["Travel"] == Decimal("125.50")
    assert summary.by_category["Meals & Entertainment"] == Decimal("50.00")
    assert summary.by_category["Other"] == Decimal("10.00")
    assert summary.by_category["Marketing"] == Decimal("0")
    assert summary.by_status == {"pending": 1, "submitted": 1, "approved": 1, "rejected": 1}
    assert list(summary.by_month) == ["2024-01", "2024-02", "2024-03"]
    assert summary.by_month["2024-01"] == Decimal("150.00")


def test_summary_since_filters_older_expenses() -> None:
    summary = summarize_expenses(EXPENSES, since=datetime(2024, 2, 1, tzinfo=timezone.utc))

    assert summary.count == 2
    assert summary.total_amount == Decimal("35.50")
    assert summary.approval_rate == 0


def test_empty_summary() -> None:
    summary = summarize_expenses([])

    assert summary.count == 0
    assert summary.total_amount == Decimal("0")
    assert summary.average_amount == Decimal("0")
    assert summary.processed_rate == 0
    assert summary.by_month == {}


def test_skill_dashboard_counts(database: Database, make_user: Callable[..., User]) -> None:
    alice = make_user("alice")
    bob = make_user("bob")
    carol = make_user("carol")
    guitar = database.create_skill({"user_id": alice.id, "name": "Guitar", "type": "teach", "level": "advanced"})
    piano = database.create_skill({"user_id": alice.id, "name": "Piano", "type": "teach", "level": "advanced"})
    database.create_skill({"user_id": alice.id, "name": "Chess", "type": "learn", "level": "beginner"})
    database.create_skill({"user_id": carol.id, "name": "chess", "type": "teach", "level": "intermediate"})

    first = request_match(database, teacher_id=alice.id, learner_id=bob.id, skill_id=guitar.id)
    transition_match(database, first.id, "accepted")
    request_match(database, teacher_id=alice.id, learner_id=make_user("dave").id, skill_id=piano.id)

    stats = skill_dashboard(database, alice.id)

    assert stats.total_skills == 3
    assert stats.teaching_skills == 2
    assert stats.learning_skills == 1
    assert stats.active_matches == 1
    assert stats.pending_matches == 1
    assert stats.completed_matches == 0
    assert stats.suggestions == 1
