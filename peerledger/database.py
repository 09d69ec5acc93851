"""Storage facade wiring one entity store per record type."""
from __future__ import annotations

import os
import secrets
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Mapping, Optional, Set, Type, TypeVar

from .models import (
    Approval,
    Expense,
    ExpenseStatus,
    LearningSession,
    Match,
    MatchStatus,
    Message,
    Skill,
    SkillType,
    Team,
    TeamMember,
    User,
)
from .store import (
    Clock,
    EntityStore,
    MemoryEntityStore,
    SQLiteEntityStore,
    ValidationError,
)

T = TypeVar("T")


class DuplicateKeyError(ValueError):
    """Raised when a natural key (username, email, membership) is already taken."""

    def __init__(self, entity: str, field: str, value: object) -> None:
        super().__init__(f"A {entity} with {field} {value!r} already exists")
        self.entity = entity
        self.field = field
        self.value = value


def _ensure_directory(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def resolve_database_path(env_value: Optional[str]) -> Path:
    """Resolve the on-disk path for the application database."""

    if env_value:
        return Path(env_value).expanduser().resolve(strict=False)
    base_dir = Path(__file__).resolve().parent.parent / "data"
    return (base_dir / "peerledger.sqlite3").resolve(strict=False)


def open_database(database_path: Optional[str] = None, storage: Optional[str] = None) -> Database:
    """Build the database selected by ``storage`` or ``PEERLEDGER_STORAGE``.

    ``sqlite`` (the default) opens the file named by ``database_path`` or
    ``PEERLEDGER_DB_PATH``; ``memory`` keeps everything in process memory.
    """

    backend = (storage or os.getenv("PEERLEDGER_STORAGE") or "sqlite").strip().lower()
    if backend == "memory":
        return Database.in_memory()
    if backend != "sqlite":
        raise ValueError(f"Unsupported storage backend '{backend}' (expected 'sqlite' or 'memory')")
    return Database(resolve_database_path(database_path or os.getenv("PEERLEDGER_DB_PATH")))


def _normalise_email(value: object) -> object:
    if isinstance(value, str):
        return value.strip().lower()
    return value


def _normalise_username(value: object) -> object:
    if isinstance(value, str):
        return value.strip()
    return value


class Database:
    """Entity stores for users, skills, matches, expenses and teams.

    ``Database(path)`` keeps every entity type in its own SQLite table;
    ``Database()`` (or :meth:`in_memory`) keeps them in process memory.  All
    stores share one re-entrant lock so :meth:`atomic` can group several
    writes without a reader observing the intermediate state.
    """

    def __init__(self, path: Optional[Path] = None, *, clock: Clock | None = None) -> None:
        if path is not None:
            _ensure_directory(path)
        self._path = path
        self._lock = threading.RLock()
        self._clock = clock

        self.users: EntityStore[User] = self._build_store(User, "users")
        self.skills: EntityStore[Skill] = self._build_store(Skill, "skills")
        self.matches: EntityStore[Match] = self._build_store(Match, "matches")
        self.messages: EntityStore[Message] = self._build_store(Message, "messages")
        self.learning_sessions: EntityStore[LearningSession] = self._build_store(
            LearningSession, "learning_sessions"
        )
        self.expenses: EntityStore[Expense] = self._build_store(Expense, "expenses")
        self.approvals: EntityStore[Approval] = self._build_store(Approval, "approvals")
        self.teams: EntityStore[Team] = self._build_store(Team, "teams")
        self.team_memberships: EntityStore[TeamMember] = self._build_store(
            TeamMember, "team_members"
        )

    @classmethod
    def in_memory(cls, *, clock: Clock | None = None) -> "Database":
        return cls(None, clock=clock)

    @property
    def path(self) -> Optional[Path]:
        return self._path

    @property
    def backend(self) -> str:
        return "memory" if self._path is None else "sqlite"

    def _build_store(self, entity: Type[T], table: str) -> EntityStore[T]:
        if self._path is None:
            return MemoryEntityStore(entity, table=table, lock=self._lock, clock=self._clock)
        return SQLiteEntityStore(entity, self._path, table=table, lock=self._lock, clock=self._clock)

    def _stores(self) -> List[EntityStore[Any]]:
        return [
            self.users,
            self.skills,
            self.matches,
            self.messages,
            self.learning_sessions,
            self.expenses,
            self.approvals,
            self.teams,
            self.team_memberships,
        ]

    def initialize(self) -> None:
        """Create the required tables if they do not already exist."""

        for store in self._stores():
            store.initialize()

    @contextmanager
    def atomic(self) -> Iterator[None]:
        """Hold the shared store lock across several operations."""

        with self._lock:
            yield

    # ------------------------------------------------------------------
    # User management
    # ------------------------------------------------------------------
    def create_user(self, payload: Mapping[str, Any]) -> User:
        """Register a new user after checking username and email are free."""

        data: Dict[str, Any] = dict(payload)
        if "username" in data:
            data["username"] = _normalise_username(data["username"])
        if "email" in data:
            data["email"] = _normalise_email(data["email"])
        if not data.get("password"):
            raise ValidationError("Password must not be empty", field="password")

        with self._lock:
            self._ensure_unique_user(data)
            return self.users.create(data)

    def get_user(self, user_id: int) -> Optional[User]:
        return self.users.get(user_id)

    def get_user_by_username(self, username: str) -> Optional[User]:
        wanted = username.strip()
        for user in self.users.find_all(lambda user: user.username == wanted):
            return user
        return None

    def get_user_by_email(self, email: str) -> Optional[User]:
        wanted = email.strip().lower()
        for user in self.users.find_all(lambda user: user.email == wanted):
            return user
        return None

    def list_users(self) -> List[User]:
        return self.users.find_all()

    def update_user(self, user_id: int, changes: Mapping[str, Any]) -> Optional[User]:
        """Apply a partial profile update, keeping usernames and emails unique."""

        data: Dict[str, Any] = dict(changes)
        if "username" in data:
            data["username"] = _normalise_username(data["username"])
        if "email" in data:
            data["email"] = _normalise_email(data["email"])

        with self._lock:
            if self.users.get(user_id) is None:
                return None
            self._ensure_unique_user(data, exclude_id=user_id)
            return self.users.update(user_id, data)

    def authenticate_user(self, username: str, password: str) -> Optional[User]:
        user = self.get_user_by_username(username)
        if user is None:
            return None
        if not secrets.compare_digest(user.password.encode("utf-8"), password.encode("utf-8")):
            return None
        return user

    def change_password(self, user_id: int, current: str, new: str) -> Optional[User]:
        user = self.users.get(user_id)
        if user is None:
            return None
        if not secrets.compare_digest(user.password.encode("utf-8"), current.encode("utf-8")):
            raise ValidationError("Current password is incorrect", field="current_password")
        if not new:
            raise ValidationError("Password must not be empty", field="password")
        return self.users.update(user_id, {"password": new})

    def _ensure_unique_user(self, data: Mapping[str, Any], exclude_id: int | None = None) -> None:
        username = data.get("username")
        if username is not None:
            existing = self.get_user_by_username(str(username))
            if existing is not None and existing.id != exclude_id:
                raise DuplicateKeyError("user", "username", username)
        email = data.get("email")
        if email is not None:
            existing = self.get_user_by_email(str(email))
            if existing is not None and existing.id != exclude_id:
                raise DuplicateKeyError("user", "email", email)

    def require_user(self, user_id: object, field: str = "user_id") -> User:
        """Return the referenced user or raise :class:`ValidationError`."""

        user = self.users.get(user_id) if isinstance(user_id, int) else None
        if user is None:
            raise ValidationError(f"User {user_id!r} does not exist", field=field)
        return user

    # ------------------------------------------------------------------
    # Skills
    # ------------------------------------------------------------------
    def create_skill(self, payload: Mapping[str, Any]) -> Skill:
        with self._lock:
            self.require_user(payload.get("user_id"))
            return self.skills.create(payload)

    def skills_for_user(self, user_id: int, skill_type: SkillType | None = None) -> List[Skill]:
        return self.skills.find_all(
            lambda skill: skill.user_id == user_id
            and (skill_type is None or skill.type == skill_type)
        )

    # ------------------------------------------------------------------
    # Matches, messages and learning sessions
    # ------------------------------------------------------------------
    def matches_for_user(self, user_id: int, status: MatchStatus | None = None) -> List[Match]:
        return self.matches.find_all(
            lambda match: match.involves(user_id) and (status is None or match.status == status)
        )

    def match_between(self, first_user_id: int, second_user_id: int) -> Optional[Match]:
        """Return the first match linking the two users in either direction."""

        pair = {first_user_id, second_user_id}
        for match in self.matches.find_all(lambda match: {match.teacher_id, match.learner_id} == pair):
            return match
        return None

    def messages_for_match(self, match_id: int) -> List[Message]:
        messages = self.messages.find_all(lambda message: message.match_id == match_id)
        return sorted(messages, key=lambda message: (message.created_at, message.id))

    def sessions_for_match(self, match_id: int) -> List[LearningSession]:
        return self.learning_sessions.find_all(lambda session: session.match_id == match_id)

    # ------------------------------------------------------------------
    # Expenses and approvals
    # ------------------------------------------------------------------
    def find_expenses(
        self,
        *,
        user_id: int | None = None,
        status: ExpenseStatus | None = None,
        team_id: int | None = None,
    ) -> List[Expense]:
        """Return expenses matching every filter that is given.

        ``team_id`` selects expenses filed by the team's current members.
        """

        member_ids: Optional[Set[int]] = None
        if team_id is not None:
            member_ids = {member.user_id for member in self._memberships(team_id)}
        return self.expenses.find_all(
            lambda expense: (user_id is None or expense.user_id == user_id)
            and (status is None or expense.status == status)
            and (member_ids is None or expense.user_id in member_ids)
        )

    def approvals_for_expense(self, expense_id: int) -> List[Approval]:
        return self.approvals.find_all(lambda approval: approval.expense_id == expense_id)

    def approvals_by_approver(self, approver_id: int) -> List[Approval]:
        return self.approvals.find_all(lambda approval: approval.approver_id == approver_id)

    # ------------------------------------------------------------------
    # Teams
    # ------------------------------------------------------------------
    def create_team(self, payload: Mapping[str, Any]) -> Team:
        with self._lock:
            self.require_user(payload.get("manager_id"), field="manager_id")
            return self.teams.create(payload)

    def teams_for_manager(self, manager_id: int) -> List[Team]:
        return self.teams.find_all(lambda team: team.manager_id == manager_id)

    def team_members(self, team_id: int) -> List[User]:
        member_ids = {member.user_id for member in self._memberships(team_id)}
        return self.users.find_all(lambda user: user.id in member_ids)

    def add_team_member(self, team_id: int, user_id: int) -> TeamMember:
        with self._lock:
            if self.teams.get(team_id) is None:
                raise ValidationError(f"Team {team_id!r} does not exist", field="team_id")
            self.require_user(user_id)
            if any(member.user_id == user_id for member in self._memberships(team_id)):
                raise DuplicateKeyError("team member", "user_id", user_id)
            return self.team_memberships.create({"team_id": team_id, "user_id": user_id})

    def remove_team_member(self, team_id: int, user_id: int) -> bool:
        with self._lock:
            for member in self._memberships(team_id):
                if member.user_id == user_id:
                    return self.team_memberships.delete(member.id)
            return False

    def _memberships(self, team_id: int) -> List[TeamMember]:
        return self.team_memberships.find_all(lambda member: member.team_id == team_id)


__all__ = ["Database", "DuplicateKeyError", "open_database", "resolve_database_path"]
