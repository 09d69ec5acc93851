"""Configuration helpers: environment paths and the YAML sample-data seed."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

import yaml

from .database import Database
from .models import SkillLevel, SkillType, User

logger = logging.getLogger("peerledger.config")

_TRUTHY = {"1", "true", "yes", "on"}


def env_flag(value: Optional[str], default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in _TRUTHY


def _require(data: Dict[str, object], required: Iterable[str], kind: str) -> None:
    missing = set(required) - data.keys()
    if missing:
        raise ValueError(f"Missing required {kind} fields: {', '.join(sorted(missing))}")


def _optional_str(data: Dict[str, object], key: str) -> Optional[str]:
    value = data.get(key)
    return str(value) if value is not None else None


@dataclass(frozen=True)
class SeedUser:
    """A user account declared in the seed file."""

    username: str
    email: str
    password: str
    first_name: str
    last_name: str = ""
    role: Optional[str] = None
    department: Optional[str] = None
    bio: Optional[str] = None
    location: Optional[str] = None

    @staticmethod
    def from_dict(data: Dict[str, object]) -> "SeedUser":
        _require(data, {"username", "email", "password", "first_name"}, "user")
        return SeedUser(
            username=str(data["username"]),
            email=str(data["email"]),
            password=str(data["password"]),
            first_name=str(data["first_name"]),
            last_name=str(data.get("last_name") or ""),
            role=_optional_str(data, "role"),
            department=_optional_str(data, "department"),
            bio=_optional_str(data, "bio"),
            location=_optional_str(data, "location"),
        )

    def payload(self) -> Dict[str, object]:
        return {
            "username": self.username,
            "email": self.email,
            "password": self.password,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "role": self.role,
            "department": self.department,
            "bio": self.bio,
            "location": self.location,
        }


@dataclass(frozen=True)
class SeedTeam:
    name: str
    manager: str
    members: Tuple[str, ...] = ()

    @staticmethod
    def from_dict(data: Dict[str, object]) -> "SeedTeam":
        _require(data, {"name", "manager"}, "team")
        members = data.get("members") or []
        if not isinstance(members, list):
            raise ValueError(f"Team '{data['name']}' members must be a list of usernames")
        return SeedTeam(
            name=str(data["name"]),
            manager=str(data["manager"]),
            members=tuple(str(member) for member in members),
        )


@dataclass(frozen=True)
class SeedSkill:
    owner: str
    name: str
    type: SkillType
    level: SkillLevel
    description: Optional[str] = None

    @staticmethod
    def from_dict(data: Dict[str, object]) -> "SeedSkill":
        _require(data, {"owner", "name", "type", "level"}, "skill")
        try:
            skill_type = SkillType(str(data["type"]))
            level = SkillLevel(str(data["level"]))
        except ValueError as exc:
            raise ValueError(f"Invalid skill '{data['name']}': {exc}") from exc
        return SeedSkill(
            owner=str(data["owner"]),
            name=str(data["name"]),
            type=skill_type,
            level=level,
            description=_optional_str(data, "description"),
        )


@dataclass(frozen=True)
class SeedData:
    users: Tuple[SeedUser, ...] = ()
    teams: Tuple[SeedTeam, ...] = ()
    skills: Tuple[SeedSkill, ...] = ()


@dataclass(frozen=True)
class SeedResult:
    users_created: int = 0
    teams_created: int = 0
    members_added: int = 0
    skills_created: int = 0


def _section(raw: Dict[str, object], key: str) -> List[Dict[str, object]]:
    items = raw.get(key) or []
    if not isinstance(items, list) or not all(isinstance(item, dict) for item in items):
        raise ValueError(f"Seed section '{key}' must be a list of mappings")
    return items


def load_seed_data(config_path: Path) -> SeedData:
    """Load sample users, teams and skills from a YAML file."""
    with config_path.open("r", encoding="utf-8") as handle:
        raw = yaml.safe_load(handle) or {}

    if not isinstance(raw, dict):
        raise ValueError("Seed file must contain a mapping at the top level")

    return SeedData(
        users=tuple(SeedUser.from_dict(item) for item in _section(raw, "users")),
        teams=tuple(SeedTeam.from_dict(item) for item in _section(raw, "teams")),
        skills=tuple(SeedSkill.from_dict(item) for item in _section(raw, "skills")),
    )


def apply_seed_data(database: Database, seed: SeedData) -> SeedResult:
    """Create whatever part of ``seed`` is not in the database yet.

    Users are matched by username, teams by name and manager, skills by
    owner, name and type; running the same seed twice creates nothing new.
    """

    users_created = teams_created = members_added = skills_created = 0

    with database.atomic():
        for entry in seed.users:
            if database.get_user_by_username(entry.username) is None:
                database.create_user(entry.payload())
                users_created += 1

        for team_entry in seed.teams:
            manager = _lookup(database, team_entry.manager, f"team '{team_entry.name}'")
            team = next(
                (team for team in database.teams_for_manager(manager.id) if team.name == team_entry.name),
                None,
            )
            if team is None:
                team = database.create_team({"name": team_entry.name, "manager_id": manager.id})
                teams_created += 1
            current = {member.id for member in database.team_members(team.id)}
            for username in team_entry.members:
                member = _lookup(database, username, f"team '{team_entry.name}'")
                if member.id not in current:
                    database.add_team_member(team.id, member.id)
                    current.add(member.id)
                    members_added += 1

        for skill_entry in seed.skills:
            owner = _lookup(database, skill_entry.owner, f"skill '{skill_entry.name}'")
            exists = any(
                skill.name == skill_entry.name
                for skill in database.skills_for_user(owner.id, skill_entry.type)
            )
            if not exists:
                database.create_skill(
                    {
                        "user_id": owner.id,
                        "name": skill_entry.name,
                        "type": skill_entry.type,
                        "level": skill_entry.level,
                        "description": skill_entry.description,
                    }
                )
                skills_created += 1

    result = SeedResult(users_created, teams_created, members_added, skills_created)
    logger.info(
        "Seed applied: %s users, %s teams, %s memberships, %s skills created",
        result.users_created,
        result.teams_created,
        result.members_added,
        result.skills_created,
    )
    return result


def _lookup(database: Database, username: str, context: str) -> User:
    user = database.get_user_by_username(username)
    if user is None:
        raise ValueError(f"Unknown user '{username}' referenced by {context}")
    return user


def resolve_seed_path(env_value: Optional[str]) -> Path:
    """Resolve the path to the seed file."""
    if env_value:
        candidate = Path(env_value).expanduser().resolve(strict=False)
    else:
        candidate = (Path(__file__).resolve().parent.parent / "config" / "seed.yaml").resolve(strict=False)
    return candidate


__all__ = [
    "SeedData",
    "SeedResult",
    "SeedSkill",
    "SeedTeam",
    "SeedUser",
    "apply_seed_data",
    "env_flag",
    "load_seed_data",
    "resolve_seed_path",
]
