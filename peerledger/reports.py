"""Aggregations behind the expense reports page and the skill dashboard."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Iterable, Optional

from .database import Database
from .matching import suggest_matches
from .models import Expense, ExpenseCategory, ExpenseStatus, MatchStatus, SkillType

_CENT = Decimal("0.01")


@dataclass(frozen=True)
class ExpenseSummary:
    count: int
    total_amount: Decimal
    approved_count: int
    approved_amount: Decimal
    average_amount: Decimal
    approval_rate: int
    processed_rate: int
    by_category: Dict[str, Decimal] = field(default_factory=dict)
    by_status: Dict[str, int] = field(default_factory=dict)
    by_month: Dict[str, Decimal] = field(default_factory=dict)


@dataclass(frozen=True)
class SkillDashboard:
    total_skills: int
    teaching_skills: int
    learning_skills: int
    pending_matches: int
    active_matches: int
    completed_matches: int
    suggestions: int


def _percent(part: int, whole: int) -> int:
    if whole == 0:
        return 0
    return int((Decimal(part) * 100 / Decimal(whole)).to_integral_value(rounding=ROUND_HALF_UP))


def summarize_expenses(expenses: Iterable[Expense], since: Optional[datetime] = None) -> ExpenseSummary:
    """Summarise expenses by status, category and month.

    ``since`` drops expenses created before that instant.  Category keys are
    the human readable labels and every category is present, zero or not.
    Months are ``YYYY-MM`` keys in chronological order.  Rates are whole
    percentages: approved over all, and approved or rejected over all.
    """

    selected = [expense for expense in expenses if since is None or expense.created_at >= since]

    total = sum((expense.amount for expense in selected), Decimal("0"))
    approved = [expense for expense in selected if expense.status is ExpenseStatus.APPROVED]
    approved_total = sum((expense.amount for expense in approved), Decimal("0"))
    processed = sum(
        1
        for expense in selected
        if expense.status in (ExpenseStatus.APPROVED, ExpenseStatus.REJECTED)
    )

    by_category: Dict[str, Decimal] = {category.label: Decimal("0") for category in ExpenseCategory}
    by_status: Dict[str, int] = {status.value: 0 for status in ExpenseStatus}
    months: Dict[str, Decimal] = {}
    for expense in selected:
        by_category[expense.category.label] += expense.amount
        by_status[expense.status.value] += 1
        key = expense.created_at.strftime("%Y-%m")
        months[key] = months.get(key, Decimal("0")) + expense.amount

    average = (total / len(selected)).quantize(_CENT, rounding=ROUND_HALF_UP) if selected else Decimal("0")

    return ExpenseSummary(
        count=len(selected),
        total_amount=total,
        approved_count=len(approved),
        approved_amount=approved_total,
        average_amount=average,
        approval_rate=_percent(len(approved), len(selected)),
        processed_rate=_percent(processed, len(selected)),
        by_category=by_category,
        by_status=by_status,
        by_month={key: months[key] for key in sorted(months)},
    )


def skill_dashboard(database: Database, user_id: int) -> SkillDashboard:
    skills = database.skills_for_user(user_id)
    matches = database.matches_for_user(user_id)

    def _count(status: MatchStatus) -> int:
        return sum(1 for match in matches if match.status is status)

    return SkillDashboard(
        total_skills=len(skills),
        teaching_skills=sum(1 for skill in skills if skill.type is SkillType.TEACH),
        learning_skills=sum(1 for skill in skills if skill.type is SkillType.LEARN),
        pending_matches=_count(MatchStatus.PENDING),
        active_matches=_count(MatchStatus.ACCEPTED),
        completed_matches=_count(MatchStatus.COMPLETED),
        suggestions=sum(1 for _ in suggest_matches(database, user_id)),
    )


__all__ = [
    "ExpenseSummary",
    "SkillDashboard",
    "skill_dashboard",
    "summarize_expenses",
]
