"""Fundamental user data model for app."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import IntEnum

LOGGER = logging.getLogger(__name__)


class Role(IntEnum):
    """User roles with hierarchical permissions.

    The value doubles as the role id stored with each user, so a role and its
    id can never disagree.
    """

    ADMINISTRATOR = 1
    SUPERVISOR = 2
    USER = 3

    @property
    def label(self) -> str:
        """Wire name of the role."""
        return _ROLE_LABELS[self]

    def check_permission(self, required_role: Role) -> bool:
        """Check if the current role has permission for the required role.

        :param required_role: Least privileged role allowed
        :return: True if the current role has permission, False otherwise
        """
        return self.value <= required_role.value

    def has_higher_permission(self, other: Role) -> bool:
        """Check if the current role is strictly more privileged than another.

        :param other: Role to compare against
        :return: True if the current role outranks ``other``
        """
        return self.value < other.value

    @classmethod
    def from_name(cls, name: str) -> Role | None:
        """Look up a role by its exact wire name or legacy alias."""
        return _ROLE_NAMES.get(name)

    @classmethod
    def from_id(cls, role_id: int) -> Role | None:
        """Look up a role by its numeric id."""
        if isinstance(role_id, bool) or not isinstance(role_id, int):
            return None
        return cls._value2member_map_.get(role_id)  # type: ignore[return-value]

    @classmethod
    def resolve(cls, name: object = None, role_id: object = None) -> Role:
        """Resolve role data from an untrusted source.

        Unrecognized values, a name that disagrees with the id, or no data at
        all resolve to the least privileged role instead of raising.

        :param name: Role name as received, if any
        :param role_id: Role id as received, if any
        :return: The matching role, or ``Role.USER``
        """
        candidates: list[Role | None] = []
        if isinstance(name, Role):
            candidates.append(name)
        elif name is not None:
            candidates.append(
                cls.from_name(name) if isinstance(name, str) else None,
            )
        if role_id is not None:
            candidates.append(cls.from_id(role_id))  # type: ignore[arg-type]

        if candidates and None not in candidates and len(set(candidates)) == 1:
            return candidates[0]

        LOGGER.warning(
            "Unrecognized role data (name=%r, role_id=%r), using %s",
            name,
            role_id,
            cls.USER.label,
        )
        return cls.USER


_ROLE_LABELS = {
    Role.ADMINISTRATOR: "Administrator",
    Role.SUPERVISOR: "Supervisor",
    Role.USER: "User",
}

_ROLE_NAMES = {
    "Administrator": Role.ADMINISTRATOR,
    "Administrador": Role.ADMINISTRATOR,
    "Supervisor": Role.SUPERVISOR,
    "User": Role.USER,
    "Usuario": Role.USER,
}


@dataclass(frozen=True)
class User:
    """Data structure representing a user."""

    id: int
    username: str
    role: Role

    @property
    def role_id(self) -> int:
        return int(self.role)
