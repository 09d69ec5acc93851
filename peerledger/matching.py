"""Teacher suggestions and the match lifecycle for the skill exchange."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterator, List, Mapping, Optional, Type, TypeVar

from .database import Database, DuplicateKeyError
from .models import (
    MATCH_TRANSITIONS,
    SESSION_TRANSITIONS,
    LearningSession,
    Match,
    MatchStatus,
    Message,
    SessionStatus,
    Skill,
    SkillType,
    User,
    check_transition,
)
from .store import ValidationError

logger = logging.getLogger("peerledger.matching")

E = TypeVar("E", bound=Enum)


@dataclass(frozen=True)
class Suggestion:
    """A teacher who offers a skill the learner wants, not yet a match."""

    teacher: User
    skill: Skill
    learning_skill: Skill
    learner_id: int


def suggest_matches(database: Database, user_id: int) -> Iterator[Suggestion]:
    """Yield teacher candidates for every ``learn`` skill owned by ``user_id``.

    A candidate is any other user holding a ``teach`` skill whose name equals
    the learning skill's name ignoring case.  Users already linked to the
    learner by a match in either direction are skipped whatever that match's
    status, so a declined request permanently hides the teacher.

    Candidates come out learning skill first, then users and their skills in
    creation order.  The scan is O(learning skills x users x teach skills) with
    no index; it is meant for small communities.  Unknown user ids simply have
    no learning skills and produce nothing.
    """

    learning_skills = database.skills_for_user(user_id, SkillType.LEARN)
    if not learning_skills:
        return

    linked = {
        match.teacher_id if match.learner_id == user_id else match.learner_id
        for match in database.matches_for_user(user_id)
    }
    teachers = [user for user in database.list_users() if user.id != user_id]
    teaching: Dict[int, List[Skill]] = {
        teacher.id: database.skills_for_user(teacher.id, SkillType.TEACH) for teacher in teachers
    }

    for learning_skill in learning_skills:
        wanted = learning_skill.name.casefold()
        for teacher in teachers:
            if teacher.id in linked:
                continue
            for skill in teaching[teacher.id]:
                if skill.name.casefold() == wanted:
                    yield Suggestion(
                        teacher=teacher,
                        skill=skill,
                        learning_skill=learning_skill,
                        learner_id=user_id,
                    )


def request_match(
    database: Database,
    *,
    teacher_id: int,
    learner_id: int,
    skill_id: int,
    status: MatchStatus | str = MatchStatus.PENDING,
) -> Match:
    """Create a pending match between a teacher and a learner over a teach skill."""

    if _parse_status(MatchStatus, status) is not MatchStatus.PENDING:
        raise ValidationError("New matches must start as pending", field="status")

    with database.atomic():
        database.require_user(teacher_id, field="teacher_id")
        database.require_user(learner_id, field="learner_id")
        if teacher_id == learner_id:
            raise ValidationError("Teacher and learner must be different users", field="learner_id")

        skill = database.skills.get(skill_id)
        if skill is None or skill.user_id != teacher_id or skill.type is not SkillType.TEACH:
            raise ValidationError(
                f"Skill {skill_id!r} is not a teach skill owned by user {teacher_id}",
                field="skill_id",
            )
        if database.match_between(teacher_id, learner_id) is not None:
            raise DuplicateKeyError("match", "users", (teacher_id, learner_id))

        match = database.matches.create(
            {
                "teacher_id": teacher_id,
                "learner_id": learner_id,
                "skill_id": skill_id,
                "status": MatchStatus.PENDING,
            }
        )

    logger.info(
        "Learner %s requested teacher %s for skill %s (match %s)",
        learner_id,
        teacher_id,
        skill_id,
        match.id,
    )
    return match


def transition_match(database: Database, match_id: int, status: MatchStatus | str) -> Optional[Match]:
    """Move a match along its lifecycle; ``None`` when the match does not exist."""

    requested = _parse_status(MatchStatus, status)

    with database.atomic():
        match = database.matches.get(match_id)
        if match is None:
            return None
        check_transition("match", MATCH_TRANSITIONS, match.status, requested)
        updated = database.matches.update(match_id, {"status": requested})

    if updated is not None and requested is not match.status:
        logger.info("Match %s moved from %s to %s", match_id, match.status.value, requested.value)
    return updated


def post_message(database: Database, *, match_id: int, sender_id: int, content: str) -> Message:
    """Append a chat message from one of the match participants."""

    if not isinstance(content, str) or not content.strip():
        raise ValidationError("Message content must not be empty", field="content")

    match = database.matches.get(match_id)
    if match is None:
        raise ValidationError(f"Match {match_id!r} does not exist", field="match_id")
    if not match.involves(sender_id):
        raise PermissionError("Only match participants may post messages")

    return database.messages.create(
        {"match_id": match_id, "sender_id": sender_id, "content": content}
    )


def schedule_session(database: Database, payload: Mapping[str, Any]) -> LearningSession:
    """Schedule a learning session for an existing match."""

    match_id = payload.get("match_id")
    if not isinstance(match_id, int) or database.matches.get(match_id) is None:
        raise ValidationError(f"Match {match_id!r} does not exist", field="match_id")
    status = payload.get("status", SessionStatus.SCHEDULED)
    if status is not None and _parse_status(SessionStatus, status) is not SessionStatus.SCHEDULED:
        raise ValidationError("New sessions must start as scheduled", field="status")
    _check_duration(payload)
    return database.learning_sessions.create(payload)


def update_session(
    database: Database,
    session_id: int,
    changes: Mapping[str, Any],
) -> Optional[LearningSession]:
    """Edit a learning session; status changes follow the session lifecycle."""

    if "match_id" in changes:
        raise ValidationError("A session cannot move to another match", field="match_id")
    _check_duration(changes)

    with database.atomic():
        session = database.learning_sessions.get(session_id)
        if session is None:
            return None
        if "status" in changes:
            requested = _parse_status(SessionStatus, changes["status"])
            check_transition("session", SESSION_TRANSITIONS, session.status, requested)
        return database.learning_sessions.update(session_id, changes)


def _parse_status(enum: Type[E], value: object) -> E:
    try:
        return enum(value)
    except ValueError as exc:
        raise ValidationError(f"Unknown status {value!r}", field="status") from exc


def _check_duration(payload: Mapping[str, Any]) -> None:
    duration = payload.get("duration")
    if isinstance(duration, int) and not isinstance(duration, bool) and duration <= 0:
        raise ValidationError("Session duration must be a positive number of minutes", field="duration")


__all__ = [
    "Suggestion",
    "post_message",
    "request_match",
    "schedule_session",
    "suggest_matches",
    "transition_match",
    "update_session",
]
