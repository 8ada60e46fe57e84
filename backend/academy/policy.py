"""Resource-ownership authorization policy.

Every lecture, link, subject and module endpoint asks the same question:
may this actor touch content owned by this module's year? The answer is a
pure function of already-fetched data, so routes and services resolve the
caller and the ownership chain first and then call `authorize`.

Ordering of the checks matters:

1. an unauthenticated caller is rejected,
2. mutating operations require the Admin role (before anything else is
   looked at),
3. a broken ownership chain is reported as *not found*, never as
   *unauthorized*,
4. the caller's year must equal the owning module's year.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from . import errors
from .models import User, UserRole

logger = logging.getLogger("academy.policy")


class Outcome(str, Enum):
    AUTHORIZED = "authorized"
    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class Actor:
    """The caller as seen by the policy."""

    id: Optional[int]
    role: UserRole
    year_id: Optional[int]

    @classmethod
    def from_user(cls, user: Optional[User]) -> Optional["Actor"]:
        if user is None:
            return None
        return cls(id=user.id, role=UserRole(user.role), year_id=user.year_id)

    @property
    def is_admin(self) -> bool:
        return self.role is UserRole.ADMIN


@dataclass(frozen=True)
class OwnershipChain:
    """Result of walking a resource up to its owning module.

    `missing` names the first entity that could not be loaded ("Lecture",
    "Link", ...); when it is set `module_year_id` is meaningless.
    """

    module_year_id: Optional[int] = None
    missing: Optional[str] = None

    @classmethod
    def broken(cls, entity: str) -> "OwnershipChain":
        return cls(module_year_id=None, missing=entity)

    @property
    def resolved(self) -> bool:
        return self.missing is None and self.module_year_id is not None


@dataclass(frozen=True)
class Decision:
    outcome: Outcome
    reason: str

    @property
    def allowed(self) -> bool:
        return self.outcome is Outcome.AUTHORIZED

    def enforce(self) -> "Decision":
        """Raise the application error matching a rejection; return self otherwise."""
        if self.outcome is Outcome.NOT_FOUND:
            raise errors.NotFound(self.reason)
        if self.outcome is Outcome.UNAUTHORIZED:
            raise errors.Unauthorized(self.reason)
        return self


AUTHORIZED = Decision(Outcome.AUTHORIZED, "Authorized")


def _reject(outcome: Outcome, reason: str, actor: Optional[Actor]) -> Decision:
    logger.info(
        "access denied outcome=%s actor=%s reason=%s",
        outcome.value,
        actor.id if actor else None,
        reason,
    )
    return Decision(outcome, reason)


def check_role(actor: Optional[Actor], mutating: bool, action: str = "perform this action") -> Decision:
    """Admin precondition for mutating operations; reads only need an actor."""
    if actor is None:
        return _reject(Outcome.UNAUTHORIZED, "Unauthorized", actor)
    if mutating and not actor.is_admin:
        return _reject(Outcome.UNAUTHORIZED, f"Unauthorized cannot {action}.", actor)
    return AUTHORIZED


def check_ownership(actor: Optional[Actor], chain: OwnershipChain) -> Decision:
    """Compare the actor's year against the chain's owning-module year."""
    if actor is None:
        return _reject(Outcome.UNAUTHORIZED, "Unauthorized", actor)
    if chain.missing is not None:
        return _reject(Outcome.NOT_FOUND, f"{chain.missing} doesn't exist.", actor)
    if chain.module_year_id is None:
        return _reject(Outcome.NOT_FOUND, "Module doesn't exist.", actor)
    if actor.year_id is None or actor.year_id != chain.module_year_id:
        return _reject(Outcome.UNAUTHORIZED, "Unauthorized", actor)
    return AUTHORIZED


def authorize(
    actor: Optional[Actor],
    chain: OwnershipChain,
    mutating: bool = False,
    action: str = "perform this action",
) -> Decision:
    """Full decision for a year-scoped resource: role first, then ownership."""
    decision = check_role(actor, mutating, action)
    if not decision.allowed:
        return decision
    return check_ownership(actor, chain)
