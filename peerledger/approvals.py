"""Expense submission and approval workflow.

Expenses move ``pending -> submitted -> approved | rejected`` and never move
back.  Owners may edit or withdraw an expense only while it is pending or
submitted.  Recording an approval is the only way out of ``submitted``; the
approval row and the expense status change are written while holding the
database lock, and the approval is removed again if the expense update fails.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Mapping, Optional

from .database import Database
from .models import (
    OPEN_EXPENSE_STATUSES,
    Approval,
    ApprovalStatus,
    Expense,
    ExpenseStatus,
    InvalidTransitionError,
)
from .store import ValidationError

logger = logging.getLogger("peerledger.approvals")

# Only the workflow functions below may write these.
_WORKFLOW_FIELDS = frozenset({"status", "approved_by", "approved_at", "submitted_at"})


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _check_amount(database: Database, data: Mapping[str, Any]) -> None:
    if data.get("amount") is None:
        return
    amount: Decimal = database.expenses.schema.coerce("amount", data["amount"])
    if amount <= 0:
        raise ValidationError("Amount must be a positive number", field="amount")


def _ensure_open(expense: Expense, action: str) -> None:
    if expense.status not in OPEN_EXPENSE_STATUSES:
        raise InvalidTransitionError(
            f"Cannot {action} expense {expense.id} once it is {expense.status.value}",
            current=expense.status.value,
        )


def create_expense(database: Database, payload: Mapping[str, Any]) -> Expense:
    """File a new expense; it always starts out pending."""

    data: Dict[str, Any] = dict(payload)
    status = data.pop("status", None)
    if status is not None and status not in (ExpenseStatus.PENDING, ExpenseStatus.PENDING.value):
        raise ValidationError("New expenses must start as pending", field="status")
    supplied = sorted(field for field in _WORKFLOW_FIELDS - {"status"} if data.get(field) is not None)
    if supplied:
        raise ValidationError(
            f"Expense fields are set by the approval workflow: {', '.join(supplied)}",
            field=supplied[0],
        )
    _check_amount(database, data)

    with database.atomic():
        database.require_user(data.get("user_id"))
        expense = database.expenses.create(data)

    logger.info("User %s filed expense %s (%s)", expense.user_id, expense.id, expense.amount)
    return expense


def edit_expense(database: Database, expense_id: int, changes: Mapping[str, Any]) -> Optional[Expense]:
    """Apply an owner's partial edit; ``None`` when the expense does not exist."""

    blocked = sorted((_WORKFLOW_FIELDS | {"user_id"}).intersection(changes))
    if blocked:
        raise ValidationError(
            f"Expense fields cannot be edited directly: {', '.join(blocked)}",
            field=blocked[0],
        )
    _check_amount(database, changes)

    with database.atomic():
        expense = database.expenses.get(expense_id)
        if expense is None:
            return None
        _ensure_open(expense, "edit")
        return database.expenses.update(expense_id, changes)


def remove_expense(database: Database, expense_id: int) -> bool:
    with database.atomic():
        expense = database.expenses.get(expense_id)
        if expense is None:
            return False
        _ensure_open(expense, "delete")
        return database.expenses.delete(expense_id)


def submit_expense(database: Database, expense_id: int) -> Optional[Expense]:
    """Move a pending expense to ``submitted`` and stamp ``submitted_at``."""

    with database.atomic():
        expense = database.expenses.get(expense_id)
        if expense is None:
            return None
        if expense.status is not ExpenseStatus.PENDING:
            raise InvalidTransitionError(
                f"Cannot move expense from '{expense.status.value}' to 'submitted'",
                current=expense.status.value,
                requested=ExpenseStatus.SUBMITTED.value,
            )
        submitted = database.expenses.update(
            expense_id,
            {"status": ExpenseStatus.SUBMITTED, "submitted_at": _utcnow()},
        )

    logger.info("Expense %s submitted for approval", expense_id)
    return submitted


def record_approval(database: Database, payload: Mapping[str, Any]) -> Approval:
    """Record an approval decision and apply it to the submitted expense.

    ``approved`` stamps ``approved_by`` and ``approved_at`` on the expense;
    ``rejected`` only changes the status.  The approval row itself keeps the
    approver and decision time in both cases.
    """

    data: Dict[str, Any] = dict(payload)
    try:
        decision = ApprovalStatus(data.get("status"))
    except ValueError as exc:
        raise ValidationError(f"Unknown approval status {data.get('status')!r}", field="status") from exc

    with database.atomic():
        expense_id = data.get("expense_id")
        expense = database.expenses.get(expense_id) if isinstance(expense_id, int) else None
        if expense is None:
            raise ValidationError(f"Expense {expense_id!r} does not exist", field="expense_id")
        approver = database.require_user(data.get("approver_id"), field="approver_id")
        if expense.status is not ExpenseStatus.SUBMITTED:
            raise InvalidTransitionError(
                f"Cannot move expense from '{expense.status.value}' to '{decision.value}'",
                current=expense.status.value,
                requested=decision.value,
            )

        approval = database.approvals.create(data)
        try:
            _apply_decision(database, expense.id, approval)
        except Exception:
            database.approvals.delete(approval.id)
            raise

    logger.info("User %s %s expense %s", approver.id, decision.value, expense.id)
    return approval


def _apply_decision(database: Database, expense_id: int, approval: Approval) -> None:
    changes: Dict[str, Any] = {"status": ExpenseStatus(approval.status.value)}
    if approval.status is ApprovalStatus.APPROVED:
        changes["approved_by"] = approval.approver_id
        changes["approved_at"] = _utcnow()
    if database.expenses.update(expense_id, changes) is None:
        raise ValidationError(f"Expense {expense_id} disappeared during approval", field="expense_id")


def revise_approval(database: Database, approval_id: int, changes: Mapping[str, Any]) -> Optional[Approval]:
    """Edit an approval's comments; decisions are final once recorded."""

    with database.atomic():
        approval = database.approvals.get(approval_id)
        if approval is None:
            return None
        if "status" in changes:
            try:
                requested = ApprovalStatus(changes["status"])
            except ValueError as exc:
                raise ValidationError(
                    f"Unknown approval status {changes['status']!r}", field="status"
                ) from exc
            if requested is not approval.status:
                raise InvalidTransitionError(
                    f"Approval {approval_id} is already {approval.status.value}",
                    current=approval.status.value,
                    requested=requested.value,
                )
        editable = {key: value for key, value in changes.items() if key != "status"}
        blocked = sorted(set(editable) - {"comments"})
        if blocked:
            raise ValidationError(
                f"Approval fields cannot be edited: {', '.join(blocked)}",
                field=blocked[0],
            )
        return database.approvals.update(approval_id, editable)


__all__ = [
    "create_expense",
    "edit_expense",
    "record_approval",
    "remove_expense",
    "revise_approval",
    "submit_expense",
]
