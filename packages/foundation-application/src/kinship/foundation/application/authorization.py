"""Authorization decision engine.

``authorize`` is a pure function of the principal, the action and the
reference date: no I/O and no hidden state. Page visibility runs through
the same ``evaluate`` core so page checks can never disagree with action
checks.

Decision order:
    1. Platform owner -> Granted.
    2. Action not in the capability table -> Denied(UNKNOWN_ACTION).
    3. Role not in the allowed set -> Denied(ROLE_NOT_PERMITTED).
    4. Billing family, restricted member, not adult -> Denied(AGE_RESTRICTED).
    5. Granted.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

from kinship.foundation.domain.capabilities import (
    ADULT_AGE,
    CAPABILITY_TABLE,
    PAGE_ACTIONS,
    is_adult,
    is_billing_action,
)
from kinship.foundation.domain.exceptions import (
    AgeRestrictedError,
    RoleNotPermittedError,
    UnknownActionError,
)
from kinship.foundation.domain.roles import Role

if TYPE_CHECKING:
    from datetime import date

    from kinship.foundation.domain.principal import Principal

logger = logging.getLogger(__name__)


class DenialReason(StrEnum):
    """Why an action was denied."""

    UNKNOWN_ACTION = "UNKNOWN_ACTION"
    ROLE_NOT_PERMITTED = "ROLE_NOT_PERMITTED"
    AGE_RESTRICTED = "AGE_RESTRICTED"


@dataclass(frozen=True, slots=True)
class Granted:
    """The action is permitted."""

    action: str

    @property
    def granted(self) -> bool:
        return True


@dataclass(frozen=True, slots=True)
class Denied:
    """The action is refused.

    Attributes:
        action: The action that was checked.
        reason: Why it was refused.
    """

    action: str
    reason: DenialReason

    @property
    def granted(self) -> bool:
        return False


Decision = Granted | Denied


def evaluate(
    role: Role | str,
    birth_date: date | None,
    action: str,
    *,
    today: date | None = None,
) -> Decision:
    """Decide ``action`` for a role and birth date.

    Args:
        role: Role of the principal.
        birth_date: Date of birth of the principal, or None.
        action: Capability table key, e.g. ``"billing:create"``.
        today: Reference date for the age gate. Defaults to the current UTC date.

    Returns:
        Granted or Denied(reason).
    """
    role = Role(role)
    if role is Role.PLATFORM_OWNER:
        return Granted(action)

    allowed = CAPABILITY_TABLE.get(action)
    if allowed is None:
        return Denied(action, DenialReason.UNKNOWN_ACTION)

    if role not in allowed:
        return Denied(action, DenialReason.ROLE_NOT_PERMITTED)

    if (
        is_billing_action(action)
        and role is Role.RESTRICTED_MEMBER
        and not is_adult(birth_date, today)
    ):
        return Denied(action, DenialReason.AGE_RESTRICTED)

    return Granted(action)


def authorize(
    principal: Principal,
    action: str,
    *,
    today: date | None = None,
) -> Decision:
    """Decide whether ``principal`` may perform ``action``.

    The principal must come from the authentication resolver, which builds
    it from freshly loaded storage records rather than token claims.
    """
    return evaluate(principal.role, principal.birth_date, action, today=today)


def ensure_authorized(
    principal: Principal,
    action: str,
    *,
    today: date | None = None,
) -> None:
    """Authorize or raise the matching AuthorizationError.

    Args:
        principal: The authenticated principal.
        action: Capability table key.
        today: Reference date for the age gate.

    Raises:
        UnknownActionError: Action is not registered (logged as a defect).
        RoleNotPermittedError: Role is not in the allowed set.
        AgeRestrictedError: Billing action by a restricted member under 18.
    """
    decision = authorize(principal, action, today=today)
    if isinstance(decision, Granted):
        return

    log_extra = {
        "principal_id": str(principal.principal_id),
        "role": str(principal.role),
        "action": action,
        "reason": str(decision.reason),
    }
    if decision.reason is DenialReason.UNKNOWN_ACTION:
        logger.error("authorization_unknown_action", extra=log_extra)
        raise UnknownActionError(action)

    logger.info("authorization_denied", extra=log_extra)
    if decision.reason is DenialReason.AGE_RESTRICTED:
        raise AgeRestrictedError(action, minimum_age=ADULT_AGE)
    raise RoleNotPermittedError(action, str(principal.role))


def can_access_page(
    page: str,
    role: Role | str,
    birth_date: date | None,
    *,
    today: date | None = None,
) -> bool:
    """Whether a page should be shown to a principal.

    Unknown pages are hidden from everyone except platform owners, who see
    every page.
    """
    if Role(role) is Role.PLATFORM_OWNER:
        return True
    action = PAGE_ACTIONS.get(page)
    if action is None:
        return False
    return evaluate(role, birth_date, action, today=today).granted


def accessible_pages(
    role: Role | str,
    birth_date: date | None,
    *,
    today: date | None = None,
) -> list[str]:
    """List the known pages visible to a principal, in declaration order."""
    return [
        page for page in PAGE_ACTIONS if can_access_page(page, role, birth_date, today=today)
    ]
