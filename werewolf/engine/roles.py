"""Role definitions for the Werewolf game."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Camp(Enum):
    """Win-condition alignment of a player."""
    GOOD = "good"
    EVIL = "evil"


class RoleType(Enum):
    """Roles a player can hold, plus two pseudo-roles used by phase steps."""
    VILLAGER = "villager"
    WEREWOLF = "werewolf"
    SEER = "seer"
    WITCH = "witch"
    GUARD = "guard"
    HUNTER = "hunter"

    # Pseudo-roles: never seated, only referenced by phase steps
    GOD = "god"  # The narrator's announcement step
    ANY = "any"  # Every living player may act


@dataclass(frozen=True)
class Role:
    """A role in the Werewolf game."""

    role_type: RoleType
    camp: Camp
    description: str = ""

    @property
    def name(self) -> str:
        return self.role_type.value.capitalize()

    def __str__(self) -> str:
        return self.name


# All seatable roles
ROLES = {
    RoleType.VILLAGER: Role(
        role_type=RoleType.VILLAGER,
        camp=Camp.GOOD,
        description="A regular villager with no special abilities. Use your wits to identify the werewolves."
    ),
    RoleType.WEREWOLF: Role(
        role_type=RoleType.WEREWOLF,
        camp=Camp.EVIL,
        description="Hunts villagers at night. The pack agrees on one victim by majority."
    ),
    RoleType.SEER: Role(
        role_type=RoleType.SEER,
        camp=Camp.GOOD,
        description="Learns the camp of one player each night."
    ),
    RoleType.WITCH: Role(
        role_type=RoleType.WITCH,
        camp=Camp.GOOD,
        description="Holds one antidote and one poison for the whole game."
    ),
    RoleType.GUARD: Role(
        role_type=RoleType.GUARD,
        camp=Camp.GOOD,
        description="Protects one player from the werewolves each night, never the same player twice in a row."
    ),
    RoleType.HUNTER: Role(
        role_type=RoleType.HUNTER,
        camp=Camp.GOOD,
        description="When killed, the Hunter can take one other player with them."
    ),
}


def get_role(name: "str | RoleType") -> Role:
    """Get a role by name or type."""
    if isinstance(name, str):
        try:
            role_type = RoleType(name.strip().lower())
        except ValueError:
            raise ValueError(
                f"Unknown role: {name}. Available: {[r.value for r in ROLES]}"
            ) from None
    else:
        role_type = name
    if role_type not in ROLES:
        raise ValueError(f"Unknown role: {name}. Available: {[r.value for r in ROLES]}")
    return ROLES[role_type]


def default_camp(role_type: RoleType) -> Camp:
    """Camp a role belongs to unless the roster says otherwise."""
    return get_role(role_type).camp


def get_roles_by_camp(camp: Camp) -> list[Role]:
    """Get all roles on one side."""
    return [role for role in ROLES.values() if role.camp == camp]


def parse_role(value: Optional[str]) -> RoleType:
    """Parse a role name from config data."""
    if value is None:
        raise ValueError("Role name is required")
    return get_role(value).role_type
