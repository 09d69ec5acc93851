"""HTTP API for the skill exchange and the expense approval workflow."""

from __future__ import annotations

import dataclasses
import logging
import os
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Dict, List, Optional, Type, TypeVar

from fastapi import FastAPI, HTTPException, Query, Response, status
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .approvals import (
    create_expense,
    edit_expense,
    record_approval,
    remove_expense,
    revise_approval,
    submit_expense,
)
from .database import Database, DuplicateKeyError, resolve_database_path
from .matching import (
    post_message,
    request_match,
    schedule_session,
    suggest_matches,
    transition_match,
    update_session,
)
from .models import (
    ApprovalStatus,
    Expense,
    ExpenseCategory,
    ExpenseStatus,
    InvalidTransitionError,
    MatchStatus,
    SessionStatus,
    SkillLevel,
    SkillType,
)
from .reports import skill_dashboard, summarize_expenses

logger = logging.getLogger("peerledger.service")

V = TypeVar("V", bound="ApiModel")


class ApiModel(BaseModel):
    """Base model speaking camelCase JSON while accepting field names too."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ----------------------------------------------------------------------
# Users
# ----------------------------------------------------------------------
class RegisterRequest(ApiModel):
    username: str = Field(..., min_length=1, max_length=64)
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=1)
    first_name: str = Field(..., min_length=1, max_length=128)
    last_name: str = Field(default="", max_length=128)
    role: Optional[str] = None
    department: Optional[str] = None
    bio: Optional[str] = None
    location: Optional[str] = None
    profile_picture: Optional[str] = None


class LoginRequest(ApiModel):
    username: str
    password: str


class UserUpdateRequest(ApiModel):
    username: Optional[str] = Field(default=None, min_length=1, max_length=64)
    email: Optional[str] = Field(default=None, min_length=3, max_length=255)
    first_name: Optional[str] = Field(default=None, min_length=1, max_length=128)
    last_name: Optional[str] = Field(default=None, max_length=128)
    role: Optional[str] = None
    department: Optional[str] = None
    bio: Optional[str] = None
    location: Optional[str] = None
    profile_picture: Optional[str] = None


class PasswordChangeRequest(ApiModel):
    current_password: str
    new_password: str = Field(..., min_length=1)


class UserView(ApiModel):
    id: int
    username: str
    email: str
    first_name: str
    last_name: str
    role: Optional[str] = None
    department: Optional[str] = None
    bio: Optional[str] = None
    location: Optional[str] = None
    profile_picture: Optional[str] = None
    created_at: datetime


class DashboardView(ApiModel):
    total_skills: int
    teaching_skills: int
    learning_skills: int
    pending_matches: int
    active_matches: int
    completed_matches: int
    suggestions: int


# ----------------------------------------------------------------------
# Skills, matches, messages and sessions
# ----------------------------------------------------------------------
class SkillCreateRequest(ApiModel):
    user_id: int
    name: str = Field(..., min_length=1, max_length=128)
    type: SkillType
    level: SkillLevel
    description: Optional[str] = None


class SkillUpdateRequest(ApiModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=128)
    type: Optional[SkillType] = None
    level: Optional[SkillLevel] = None
    description: Optional[str] = None


class SkillView(ApiModel):
    id: int
    user_id: int
    name: str
    type: SkillType
    level: SkillLevel
    description: Optional[str] = None
    created_at: datetime


class MatchCreateRequest(ApiModel):
    teacher_id: int
    learner_id: int
    skill_id: int
    status: MatchStatus = MatchStatus.PENDING


class MatchUpdateRequest(ApiModel):
    status: MatchStatus


class MatchView(ApiModel):
    id: int
    teacher_id: int
    learner_id: int
    skill_id: int
    status: MatchStatus
    created_at: datetime


class LearnerRef(ApiModel):
    id: int


class SuggestionView(ApiModel):
    teacher: UserView
    learner: LearnerRef
    skill: SkillView
    learning_skill: SkillView


class MessageCreateRequest(ApiModel):
    match_id: int
    sender_id: int
    content: str = Field(..., min_length=1, max_length=4000)


class MessageView(ApiModel):
    id: int
    match_id: int
    sender_id: int
    content: str
    created_at: datetime


class SessionCreateRequest(ApiModel):
    match_id: int
    scheduled_at: datetime
    duration: int = Field(..., gt=0)
    notes: Optional[str] = None


class SessionUpdateRequest(ApiModel):
    scheduled_at: Optional[datetime] = None
    duration: Optional[int] = Field(default=None, gt=0)
    status: Optional[SessionStatus] = None
    notes: Optional[str] = None


class SessionView(ApiModel):
    id: int
    match_id: int
    scheduled_at: datetime
    duration: int
    status: SessionStatus
    notes: Optional[str] = None
    created_at: datetime


# ----------------------------------------------------------------------
# Expenses, approvals and teams
# ----------------------------------------------------------------------
class ExpenseCreateRequest(ApiModel):
    user_id: int
    title: str = Field(..., min_length=1, max_length=255)
    amount: Decimal = Field(..., gt=0)
    category: ExpenseCategory
    description: Optional[str] = None
    receipt_url: Optional[str] = None


class ExpenseUpdateRequest(ApiModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    amount: Optional[Decimal] = Field(default=None, gt=0)
    category: Optional[ExpenseCategory] = None
    description: Optional[str] = None
    receipt_url: Optional[str] = None


class ExpenseView(ApiModel):
    id: int
    user_id: int
    title: str
    amount: Decimal
    category: ExpenseCategory
    description: Optional[str] = None
    receipt_url: Optional[str] = None
    status: ExpenseStatus
    approved_by: Optional[int] = None
    approved_at: Optional[datetime] = None
    submitted_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class ExpenseSummaryView(ApiModel):
    count: int
    total_amount: Decimal
    approved_count: int
    approved_amount: Decimal
    average_amount: Decimal
    approval_rate: int
    processed_rate: int
    by_category: Dict[str, Decimal]
    by_status: Dict[str, int]
    by_month: Dict[str, Decimal]


class ApprovalCreateRequest(ApiModel):
    expense_id: int
    approver_id: int
    status: ApprovalStatus
    comments: Optional[str] = None


class ApprovalUpdateRequest(ApiModel):
    status: Optional[ApprovalStatus] = None
    comments: Optional[str] = None


class ApprovalView(ApiModel):
    id: int
    expense_id: int
    approver_id: int
    status: ApprovalStatus
    comments: Optional[str] = None
    created_at: datetime


class TeamCreateRequest(ApiModel):
    name: str = Field(..., min_length=1, max_length=128)
    manager_id: int


class TeamView(ApiModel):
    id: int
    name: str
    manager_id: int
    created_at: datetime


class TeamMemberRequest(ApiModel):
    user_id: int


class TeamMemberView(ApiModel):
    id: int
    team_id: int
    user_id: int
    created_at: datetime


def _view(model: Type[V], record: object) -> V:
    """Build a response model from a domain dataclass or report."""

    return model.model_validate(dataclasses.asdict(record))


def _not_found(kind: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{kind} not found")


def _initialise_database(database: Database) -> Database:
    database.initialize()
    return database


def register_api_routes(app: FastAPI, database: Database) -> None:
    """Expose the JSON API endpoints on the provided FastAPI application."""

    @app.get("/healthz")
    def healthcheck() -> Dict[str, str]:
        return {"status": "ok"}

    # ------------------------------------------------------------------
    # Authentication and users
    # ------------------------------------------------------------------
    @app.post("/api/auth/register", status_code=status.HTTP_201_CREATED, response_model=UserView)
    def register(request: RegisterRequest) -> UserView:
        try:
            user = database.create_user(request.model_dump())
        except DuplicateKeyError as exc:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

        logger.info("Registered user %s (%s)", user.id, user.username)
        return _view(UserView, user)

    @app.post("/api/auth/login", response_model=UserView)
    def login(request: LoginRequest) -> UserView:
        user = database.authenticate_user(request.username, request.password)
        if user is None:
            logger.warning("Rejected login for %s", request.username)
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid username or password",
            )
        return _view(UserView, user)

    @app.get("/api/users", response_model=List[UserView])
    def list_users() -> List[UserView]:
        return [_view(UserView, user) for user in database.list_users()]

    @app.get("/api/users/{user_id}", response_model=UserView)
    def get_user(user_id: int) -> UserView:
        user = database.get_user(user_id)
        if user is None:
            raise _not_found("User")
        return _view(UserView, user)

    @app.put("/api/users/{user_id}", response_model=UserView)
    def update_user(user_id: int, request: UserUpdateRequest) -> UserView:
        try:
            user = database.update_user(user_id, request.model_dump(exclude_unset=True))
        except DuplicateKeyError as exc:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
        if user is None:
            raise _not_found("User")
        return _view(UserView, user)

    @app.put("/api/users/{user_id}/password", response_model=UserView)
    def change_password(user_id: int, request: PasswordChangeRequest) -> UserView:
        try:
            user = database.change_password(user_id, request.current_password, request.new_password)
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
        if user is None:
            raise _not_found("User")
        logger.info("User %s changed their password", user_id)
        return _view(UserView, user)

    @app.get("/api/users/{user_id}/dashboard", response_model=DashboardView)
    def dashboard(user_id: int) -> DashboardView:
        if database.get_user(user_id) is None:
            raise _not_found("User")
        return _view(DashboardView, skill_dashboard(database, user_id))

    # ------------------------------------------------------------------
    # Skills
    # ------------------------------------------------------------------
    @app.get("/api/skills", response_model=List[SkillView])
    def list_skills(
        user_id: Optional[int] = Query(None, alias="userId"),
        skill_type: Optional[SkillType] = Query(None, alias="type"),
    ) -> List[SkillView]:
        skills = database.skills.find_all(
            lambda skill: (user_id is None or skill.user_id == user_id)
            and (skill_type is None or skill.type == skill_type)
        )
        return [_view(SkillView, skill) for skill in skills]

    @app.post("/api/skills", status_code=status.HTTP_201_CREATED, response_model=SkillView)
    def create_skill(request: SkillCreateRequest) -> SkillView:
        try:
            skill = database.create_skill(request.model_dump())
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
        return _view(SkillView, skill)

    @app.get("/api/skills/{skill_id}", response_model=SkillView)
    def get_skill(skill_id: int) -> SkillView:
        skill = database.skills.get(skill_id)
        if skill is None:
            raise _not_found("Skill")
        return _view(SkillView, skill)

    @app.put("/api/skills/{skill_id}", response_model=SkillView)
    def update_skill(skill_id: int, request: SkillUpdateRequest) -> SkillView:
        try:
            skill = database.skills.update(skill_id, request.model_dump(exclude_unset=True))
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
        if skill is None:
            raise _not_found("Skill")
        return _view(SkillView, skill)

    @app.delete("/api/skills/{skill_id}", status_code=status.HTTP_204_NO_CONTENT)
    def delete_skill(skill_id: int) -> Response:
        if not database.skills.delete(skill_id):
            raise _not_found("Skill")
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    # ------------------------------------------------------------------
    # Matches and suggestions
    # ------------------------------------------------------------------
    @app.get("/api/matches", response_model=List[MatchView])
    def list_matches(
        user_id: Optional[int] = Query(None, alias="userId"),
        status_filter: Optional[MatchStatus] = Query(None, alias="status"),
    ) -> List[MatchView]:
        matches = database.matches.find_all(
            lambda match: (user_id is None or match.involves(user_id))
            and (status_filter is None or match.status == status_filter)
        )
        return [_view(MatchView, match) for match in matches]

    @app.post("/api/matches", status_code=status.HTTP_201_CREATED, response_model=MatchView)
    def create_match(request: MatchCreateRequest) -> MatchView:
        try:
            match = request_match(
                database,
                teacher_id=request.teacher_id,
                learner_id=request.learner_id,
                skill_id=request.skill_id,
                status=request.status,
            )
        except DuplicateKeyError as exc:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
        return _view(MatchView, match)

    @app.get("/api/matches/suggestions/{user_id}", response_model=List[SuggestionView])
    def list_suggestions(user_id: int) -> List[SuggestionView]:
        if database.get_user(user_id) is None:
            raise _not_found("User")
        return [
            SuggestionView(
                teacher=_view(UserView, suggestion.teacher),
                learner=LearnerRef(id=suggestion.learner_id),
                skill=_view(SkillView, suggestion.skill),
                learning_skill=_view(SkillView, suggestion.learning_skill),
            )
            for suggestion in suggest_matches(database, user_id)
        ]

    @app.put("/api/matches/{match_id}", response_model=MatchView)
    def update_match(match_id: int, request: MatchUpdateRequest) -> MatchView:
        try:
            match = transition_match(database, match_id, request.status)
        except InvalidTransitionError as exc:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
        if match is None:
            raise _not_found("Match")
        return _view(MatchView, match)

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------
    @app.get("/api/messages/{match_id}", response_model=List[MessageView])
    def list_messages(match_id: int) -> List[MessageView]:
        if database.matches.get(match_id) is None:
            raise _not_found("Match")
        return [_view(MessageView, message) for message in database.messages_for_match(match_id)]

    @app.post("/api/messages", status_code=status.HTTP_201_CREATED, response_model=MessageView)
    def create_message(request: MessageCreateRequest) -> MessageView:
        try:
            message = post_message(
                database,
                match_id=request.match_id,
                sender_id=request.sender_id,
                content=request.content,
            )
        except PermissionError as exc:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
        return _view(MessageView, message)

    # ------------------------------------------------------------------
    # Learning sessions
    # ------------------------------------------------------------------
    @app.get("/api/sessions", response_model=List[SessionView])
    def list_sessions(match_id: Optional[int] = Query(None, alias="matchId")) -> List[SessionView]:
        if match_id is None:
            sessions = database.learning_sessions.find_all()
        else:
            sessions = database.sessions_for_match(match_id)
        return [_view(SessionView, session) for session in sessions]

    @app.post("/api/sessions", status_code=status.HTTP_201_CREATED, response_model=SessionView)
    def create_session(request: SessionCreateRequest) -> SessionView:
        try:
            session = schedule_session(database, request.model_dump())
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
        return _view(SessionView, session)

    @app.put("/api/sessions/{session_id}", response_model=SessionView)
    def edit_session(session_id: int, request: SessionUpdateRequest) -> SessionView:
        try:
            session = update_session(database, session_id, request.model_dump(exclude_unset=True))
        except InvalidTransitionError as exc:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
        if session is None:
            raise _not_found("Session")
        return _view(SessionView, session)

    # ------------------------------------------------------------------
    # Expenses
    # ------------------------------------------------------------------
    def _select_expenses(
        user_id: Optional[int],
        status_filter: Optional[ExpenseStatus],
        team_id: Optional[int],
    ) -> List[Expense]:
        if team_id is not None and database.teams.get(team_id) is None:
            raise _not_found("Team")
        return database.find_expenses(user_id=user_id, status=status_filter, team_id=team_id)

    @app.get("/api/expenses", response_model=List[ExpenseView])
    def list_expenses(
        user_id: Optional[int] = Query(None, alias="userId"),
        status_filter: Optional[ExpenseStatus] = Query(None, alias="status"),
        team_id: Optional[int] = Query(None, alias="teamId"),
    ) -> List[ExpenseView]:
        expenses = _select_expenses(user_id, status_filter, team_id)
        return [_view(ExpenseView, expense) for expense in expenses]

    @app.post("/api/expenses", status_code=status.HTTP_201_CREATED, response_model=ExpenseView)
    def file_expense(request: ExpenseCreateRequest) -> ExpenseView:
        try:
            expense = create_expense(database, request.model_dump())
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
        return _view(ExpenseView, expense)

    @app.get("/api/expenses/summary", response_model=ExpenseSummaryView)
    def expense_summary(
        user_id: Optional[int] = Query(None, alias="userId"),
        team_id: Optional[int] = Query(None, alias="teamId"),
        days: Optional[int] = Query(None, ge=0),
    ) -> ExpenseSummaryView:
        since = None
        if days is not None:
            since = datetime.now(timezone.utc) - timedelta(days=days)
        expenses = _select_expenses(user_id, None, team_id)
        return _view(ExpenseSummaryView, summarize_expenses(expenses, since=since))

    @app.get("/api/expenses/{expense_id}", response_model=ExpenseView)
    def get_expense(expense_id: int) -> ExpenseView:
        expense = database.expenses.get(expense_id)
        if expense is None:
            raise _not_found("Expense")
        return _view(ExpenseView, expense)

    @app.put("/api/expenses/{expense_id}", response_model=ExpenseView)
    def update_expense(expense_id: int, request: ExpenseUpdateRequest) -> ExpenseView:
        try:
            expense = edit_expense(database, expense_id, request.model_dump(exclude_unset=True))
        except InvalidTransitionError as exc:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
        if expense is None:
            raise _not_found("Expense")
        return _view(ExpenseView, expense)

    @app.delete("/api/expenses/{expense_id}", status_code=status.HTTP_204_NO_CONTENT)
    def delete_expense(expense_id: int) -> Response:
        try:
            removed = remove_expense(database, expense_id)
        except InvalidTransitionError as exc:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
        if not removed:
            raise _not_found("Expense")
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    @app.post("/api/expenses/{expense_id}/submit", response_model=ExpenseView)
    def submit(expense_id: int) -> ExpenseView:
        try:
            expense = submit_expense(database, expense_id)
        except InvalidTransitionError as exc:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
        if expense is None:
            raise _not_found("Expense")
        return _view(ExpenseView, expense)

    # ------------------------------------------------------------------
    # Approvals
    # ------------------------------------------------------------------
    @app.get("/api/approvals", response_model=List[ApprovalView])
    def list_approvals(
        approver_id: Optional[int] = Query(None, alias="approverId"),
        expense_id: Optional[int] = Query(None, alias="expenseId"),
    ) -> List[ApprovalView]:
        approvals = database.approvals.find_all(
            lambda approval: (approver_id is None or approval.approver_id == approver_id)
            and (expense_id is None or approval.expense_id == expense_id)
        )
        return [_view(ApprovalView, approval) for approval in approvals]

    @app.post("/api/approvals", status_code=status.HTTP_201_CREATED, response_model=ApprovalView)
    def create_approval(request: ApprovalCreateRequest) -> ApprovalView:
        try:
            approval = record_approval(database, request.model_dump())
        except InvalidTransitionError as exc:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
        return _view(ApprovalView, approval)

    @app.put("/api/approvals/{approval_id}", response_model=ApprovalView)
    def update_approval(approval_id: int, request: ApprovalUpdateRequest) -> ApprovalView:
        try:
            approval = revise_approval(database, approval_id, request.model_dump(exclude_unset=True))
        except InvalidTransitionError as exc:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
        if approval is None:
            raise _not_found("Approval")
        return _view(ApprovalView, approval)

    # ------------------------------------------------------------------
    # Teams
    # ------------------------------------------------------------------
    @app.get("/api/teams", response_model=List[TeamView])
    def list_teams(manager_id: Optional[int] = Query(None, alias="managerId")) -> List[TeamView]:
        if manager_id is None:
            teams = database.teams.find_all()
        else:
            teams = database.teams_for_manager(manager_id)
        return [_view(TeamView, team) for team in teams]

    @app.post("/api/teams", status_code=status.HTTP_201_CREATED, response_model=TeamView)
    def create_team(request: TeamCreateRequest) -> TeamView:
        try:
            team = database.create_team(request.model_dump())
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
        logger.info("Team %s created under manager %s", team.id, team.manager_id)
        return _view(TeamView, team)

    @app.get("/api/teams/{team_id}/members", response_model=List[UserView])
    def list_team_members(team_id: int) -> List[UserView]:
        if database.teams.get(team_id) is None:
            raise _not_found("Team")
        return [_view(UserView, user) for user in database.team_members(team_id)]

    @app.post(
        "/api/teams/{team_id}/members",
        status_code=status.HTTP_201_CREATED,
        response_model=TeamMemberView,
    )
    def add_team_member(team_id: int, request: TeamMemberRequest) -> TeamMemberView:
        if database.teams.get(team_id) is None:
            raise _not_found("Team")
        try:
            member = database.add_team_member(team_id, request.user_id)
        except DuplicateKeyError as exc:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
        return _view(TeamMemberView, member)

    @app.delete("/api/teams/{team_id}/members/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
    def remove_team_member(team_id: int, user_id: int) -> Response:
        if not database.remove_team_member(team_id, user_id):
            raise _not_found("Team member")
        return Response(status_code=status.HTTP_204_NO_CONTENT)


def create_app(*, database: Database | None = None) -> FastAPI:
    """Instantiate the FastAPI application for the peer ledger service."""

    db = database or Database(resolve_database_path(os.getenv("PEERLEDGER_DB_PATH")))
    _initialise_database(db)

    app = FastAPI(
        title="PeerLedger API",
        version="0.1.0",
        description="Peer skill exchange and expense approval service.",
    )
    app.state.database = db

    register_api_routes(app, db)

    return app


__all__ = ["ApiModel", "create_app", "register_api_routes"]
