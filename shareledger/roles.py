"""
roles.py - Explicit role tables for administrative authorization

Admin operations never consult global state. Every role-gated function takes
a RoleTable argument and checks the caller against it with require_role().
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, Mapping, Optional

from .core import Unauthorized


ADMIN = "ADMIN"
PAUSER = "PAUSER"
ORACLE_UPDATER = "ORACLE_UPDATER"


@dataclass(frozen=True, slots=True)
class RoleTable:
    """
    Immutable mapping from role name to the accounts holding it.

    grant() and revoke() return new tables; an existing table never changes.

    Example:
        roles = RoleTable.with_admin("admin").grant(PAUSER, "ops")
        require_role(roles, PAUSER, "ops")
    """
    members: Mapping[str, FrozenSet[str]] = field(default_factory=dict)

    @classmethod
    def with_admin(cls, admin: str, **extra: Iterable[str]) -> RoleTable:
        """Table with a single admin, plus any extra role=accounts pairs."""
        members: Dict[str, FrozenSet[str]] = {ADMIN: frozenset([admin])}
        for role, accounts in extra.items():
            members[role] = frozenset(accounts)
        return cls(members)

    def has_role(self, role: str, account: str) -> bool:
        return account in self.members.get(role, frozenset())

    def grant(self, role: str, account: str) -> RoleTable:
        members = dict(self.members)
        members[role] = members.get(role, frozenset()) | {account}
        return RoleTable(members)

    def revoke(self, role: str, account: str) -> RoleTable:
        members = dict(self.members)
        members[role] = members.get(role, frozenset()) - {account}
        return RoleTable(members)

    def holders(self, role: str) -> FrozenSet[str]:
        return self.members.get(role, frozenset())


def require_role(roles: RoleTable, role: str, caller: str, fallback: Optional[str] = ADMIN) -> None:
    """
    Raise Unauthorized unless caller holds role (or the fallback role).

    Args:
        roles: Role table to check against
        role: Required role
        caller: Account attempting the operation
        fallback: Role that also satisfies the check (ADMIN by default, None to disable)
    """
    if roles.has_role(role, caller):
        return
    if fallback is not None and roles.has_role(fallback, caller):
        return
    raise Unauthorized(f"{caller} lacks role {role}")
