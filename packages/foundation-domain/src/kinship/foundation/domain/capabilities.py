"""Static capability table, page visibility map and the billing age predicate.

The table maps every registered action to the set of roles allowed to
perform it. Actions are named ``family:verb``. Platform owners are not
listed in any decision path: the decision engine grants them every
registered action before the table is consulted.

Page visibility is expressed as a page -> gating action map over the same
table, so page checks and action checks share one source of truth.
"""

from __future__ import annotations

from datetime import UTC, date, datetime
from enum import StrEnum
from types import MappingProxyType
from typing import TYPE_CHECKING

from kinship.foundation.domain.roles import Role

if TYPE_CHECKING:
    from collections.abc import Mapping

ADULT_AGE = 18

# A principal with no birth date on file passes the billing age gate.
# Flip to False to deny billing until a birth date is provided.
ASSUME_ADULT_WHEN_BIRTH_DATE_MISSING = True

BILLING_FAMILY = "billing"


class Action(StrEnum):
    """Every action known to the capability table."""

    # Tenant lifecycle
    TENANT_CREATE = "tenant:create"
    TENANT_READ_ALL = "tenant:read_all"
    TENANT_UPDATE = "tenant:update"
    TENANT_DELETE = "tenant:delete"

    # Principal lifecycle
    PRINCIPAL_CREATE = "principal:create"
    PRINCIPAL_READ = "principal:read"
    PRINCIPAL_UPDATE = "principal:update"
    PRINCIPAL_DELETE = "principal:delete"

    # Family content
    DATE_CREATE = "date:create"
    DATE_READ = "date:read"
    DATE_UPDATE = "date:update"
    DATE_DELETE = "date:delete"
    WISHLIST_CREATE = "wishlist:create"
    WISHLIST_READ = "wishlist:read"
    WISHLIST_UPDATE = "wishlist:update"
    WISHLIST_DELETE = "wishlist:delete"
    CHORE_CREATE = "chore:create"
    CHORE_READ = "chore:read"
    CHORE_UPDATE = "chore:update"
    CHORE_DELETE = "chore:delete"
    ORDER_CREATE = "order:create"
    ORDER_READ = "order:read"
    ORDER_UPDATE = "order:update"
    ORDER_DELETE = "order:delete"
    REMINDER_CREATE = "reminder:create"
    REMINDER_READ = "reminder:read"
    REMINDER_UPDATE = "reminder:update"
    REMINDER_DELETE = "reminder:delete"

    # Promotional content
    ADS_CREATE = "ads:create"
    ADS_READ = "ads:read"
    ADS_UPDATE = "ads:update"
    ADS_DELETE = "ads:delete"

    # AI / behaviour configuration
    AI_CONFIG = "ai:config"
    AI_AGENTS = "ai:agents"
    AI_TOOLS = "ai:tools"
    AI_FUNCTIONS = "ai:functions"
    AI_LOGIC = "ai:logic"

    # System-wide settings
    SYSTEM_SETTINGS = "system:settings"
    SYSTEM_FEATURES = "system:features"
    SYSTEM_WEBHOOKS = "system:webhooks"
    SYSTEM_SMS = "system:sms"
    SYSTEM_CALLS = "system:calls"

    # Billing (age-gated for restricted members)
    BILLING_READ = "billing:read"
    BILLING_CREATE = "billing:create"


_EVERYONE = frozenset(Role)
_OWNERS = frozenset({Role.PLATFORM_OWNER, Role.TENANT_OWNER})
_PLATFORM_ONLY = frozenset({Role.PLATFORM_OWNER})

_PLATFORM_FAMILIES = ("tenant", "ads", "ai", "system")
_CONTENT_FAMILIES = ("date", "wishlist", "chore", "order", "reminder")


def family_of(action: str) -> str:
    """Return the family prefix of an action (``"chore:read"`` -> ``"chore"``)."""
    return action.partition(":")[0]


def _allowed_roles(action: Action) -> frozenset[Role]:
    family = family_of(action)
    if family in _PLATFORM_FAMILIES:
        return _PLATFORM_ONLY
    if family == "principal":
        return _EVERYONE if action is Action.PRINCIPAL_READ else _OWNERS
    if family in _CONTENT_FAMILIES or family == BILLING_FAMILY:
        return _EVERYONE
    msg = f"Action {action} has no capability family"
    raise ValueError(msg)


CAPABILITY_TABLE: Mapping[str, frozenset[Role]] = MappingProxyType(
    {action.value: _allowed_roles(action) for action in Action}
)


def is_billing_action(action: str) -> bool:
    """Whether the action belongs to the age-gated billing family."""
    return family_of(action) == BILLING_FAMILY


# Page slug -> action whose grant makes the page visible.
PAGE_ACTIONS: Mapping[str, Action] = MappingProxyType(
    {
        # Family pages
        "dashboard": Action.REMINDER_READ,
        "analytics": Action.REMINDER_READ,
        "important-dates": Action.DATE_READ,
        "wishlist": Action.WISHLIST_READ,
        "chores": Action.CHORE_READ,
        "gift-orders": Action.ORDER_READ,
        "seasonal-reminders": Action.REMINDER_READ,
        # Tenant administration
        "users": Action.PRINCIPAL_UPDATE,
        # Platform administration
        "tenants": Action.TENANT_READ_ALL,
        "ads": Action.ADS_READ,
        "ai-config": Action.AI_CONFIG,
        "ai-agents": Action.AI_AGENTS,
        "ai-tools": Action.AI_TOOLS,
        "functions": Action.AI_FUNCTIONS,
        "logic-rules": Action.AI_LOGIC,
        "voices": Action.SYSTEM_CALLS,
        "greeting": Action.SYSTEM_CALLS,
        "webhooks": Action.SYSTEM_WEBHOOKS,
        "sms-settings": Action.SYSTEM_SMS,
        "settings": Action.SYSTEM_SETTINGS,
        "features": Action.SYSTEM_FEATURES,
        "payment-processing": Action.SYSTEM_SETTINGS,
        # Billing
        "billing": Action.BILLING_READ,
        "payments": Action.BILLING_CREATE,
    }
)


def calendar_age(birth_date: date, today: date) -> int:
    """Whole years between ``birth_date`` and ``today``.

    A birthday that has not happened yet this year does not count.
    """
    before_birthday = (today.month, today.day) < (birth_date.month, birth_date.day)
    return today.year - birth_date.year - int(before_birthday)


def is_adult(birth_date: date | None, today: date | None = None) -> bool:
    """Whether a person born on ``birth_date`` is at least ``ADULT_AGE`` today.

    Args:
        birth_date: Date of birth, or None when unknown.
        today: Reference date. Defaults to the current UTC date.

    Returns:
        True for adults. For a missing birth date, the value of
        ``ASSUME_ADULT_WHEN_BIRTH_DATE_MISSING``.
    """
    if birth_date is None:
        return ASSUME_ADULT_WHEN_BIRTH_DATE_MISSING
    if today is None:
        today = datetime.now(UTC).date()
    return calendar_age(birth_date, today) >= ADULT_AGE
