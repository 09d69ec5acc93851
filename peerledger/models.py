"""Domain models shared by the skill exchange and expense approval services."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Dict, FrozenSet, Optional


class InvalidTransitionError(ValueError):
    """Raised when a status change is not allowed from the current state."""

    def __init__(self, message: str, *, current: str | None = None, requested: str | None = None) -> None:
        super().__init__(message)
        self.current = current
        self.requested = requested


class SkillType(str, Enum):
    TEACH = "teach"
    LEARN = "learn"


class SkillLevel(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class MatchStatus(str, Enum):
    """Lifecycle of a teacher/learner pairing."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    COMPLETED = "completed"


class SessionStatus(str, Enum):
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ExpenseStatus(str, Enum):
    """Expense states; ``approved`` and ``rejected`` are terminal."""

    PENDING = "pending"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"


class ExpenseCategory(str, Enum):
    TRAVEL = "travel"
    MEALS = "meals"
    MARKETING = "marketing"
    OFFICE_SUPPLIES = "office_supplies"
    CLIENT_ENTERTAINMENT = "client_entertainment"
    OTHER = "other"

    @property
    def label(self) -> str:
        return _CATEGORY_LABELS[self]


class ApprovalStatus(str, Enum):
    APPROVED = "approved"
    REJECTED = "rejected"


_CATEGORY_LABELS: Dict[ExpenseCategory, str] = {
    ExpenseCategory.TRAVEL: "Travel",
    ExpenseCategory.MEALS: "Meals & Entertainment",
    ExpenseCategory.MARKETING: "Marketing",
    ExpenseCategory.OFFICE_SUPPLIES: "Office Supplies",
    ExpenseCategory.CLIENT_ENTERTAINMENT: "Client Entertainment",
    ExpenseCategory.OTHER: "Other",
}

MATCH_TRANSITIONS: Dict[MatchStatus, FrozenSet[MatchStatus]] = {
    MatchStatus.PENDING: frozenset({MatchStatus.ACCEPTED, MatchStatus.DECLINED}),
    MatchStatus.ACCEPTED: frozenset({MatchStatus.COMPLETED}),
    MatchStatus.DECLINED: frozenset(),
    MatchStatus.COMPLETED: frozenset(),
}

SESSION_TRANSITIONS: Dict[SessionStatus, FrozenSet[SessionStatus]] = {
    SessionStatus.SCHEDULED: frozenset({SessionStatus.COMPLETED, SessionStatus.CANCELLED}),
    SessionStatus.COMPLETED: frozenset(),
    SessionStatus.CANCELLED: frozenset(),
}

# Owners may still edit or withdraw an expense in these states.
OPEN_EXPENSE_STATUSES: FrozenSet[ExpenseStatus] = frozenset(
    {ExpenseStatus.PENDING, ExpenseStatus.SUBMITTED}
)


def check_transition(
    entity: str,
    table: Dict[Enum, FrozenSet[Enum]],
    current: Enum,
    requested: Enum,
) -> None:
    """Raise :class:`InvalidTransitionError` unless ``current -> requested`` is allowed.

    Requesting the current status again is treated as a no-op and allowed.
    """

    if requested == current:
        return
    if requested not in table.get(current, frozenset()):
        raise InvalidTransitionError(
            f"Cannot move {entity} from '{current.value}' to '{requested.value}'",
            current=current.value,
            requested=requested.value,
        )


@dataclass(frozen=True, kw_only=True)
class User:
    """A registered account; ``password`` is an opaque credential."""

    id: int
    username: str
    email: str
    password: str
    first_name: str
    last_name: str = ""
    role: Optional[str] = None
    department: Optional[str] = None
    bio: Optional[str] = None
    location: Optional[str] = None
    profile_picture: Optional[str] = None
    created_at: datetime

    @property
    def display_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part)


@dataclass(frozen=True, kw_only=True)
class Skill:
    id: int
    user_id: int
    name: str
    type: SkillType
    level: SkillLevel
    description: Optional[str] = None
    created_at: datetime


@dataclass(frozen=True, kw_only=True)
class Match:
    id: int
    teacher_id: int
    learner_id: int
    skill_id: int
    status: MatchStatus = MatchStatus.PENDING
    created_at: datetime

    def involves(self, user_id: int) -> bool:
        return user_id in (self.teacher_id, self.learner_id)


@dataclass(frozen=True, kw_only=True)
class Message:
    id: int
    match_id: int
    sender_id: int
    content: str
    created_at: datetime


@dataclass(frozen=True, kw_only=True)
class LearningSession:
    """A scheduled meeting between the two participants of a match."""

    id: int
    match_id: int
    scheduled_at: datetime
    duration: int
    status: SessionStatus = SessionStatus.SCHEDULED
    notes: Optional[str] = None
    created_at: datetime


@dataclass(frozen=True, kw_only=True)
class Expense:
    id: int
    user_id: int
    title: str
    amount: Decimal
    category: ExpenseCategory
    description: Optional[str] = None
    receipt_url: Optional[str] = None
    status: ExpenseStatus = ExpenseStatus.PENDING
    approved_by: Optional[int] = None
    approved_at: Optional[datetime] = None
    submitted_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True, kw_only=True)
class Approval:
    id: int
    expense_id: int
    approver_id: int
    status: ApprovalStatus
    comments: Optional[str] = None
    created_at: datetime


@dataclass(frozen=True, kw_only=True)
class Team:
    id: int
    name: str
    manager_id: int
    created_at: datetime


@dataclass(frozen=True, kw_only=True)
class TeamMember:
    id: int
    team_id: int
    user_id: int
    created_at: datetime


__all__ = [
    "Approval",
    "ApprovalStatus",
    "Expense",
    "ExpenseCategory",
    "ExpenseStatus",
    "InvalidTransitionError",
    "LearningSession",
    "MATCH_TRANSITIONS",
    "Match",
    "MatchStatus",
    "Message",
    "OPEN_EXPENSE_STATUSES",
    "SESSION_TRANSITIONS",
    "SessionStatus",
    "Skill",
    "SkillLevel",
    "SkillType",
    "Team",
    "TeamMember",
    "User",
    "check_transition",
]
