"""Value objects for the tenancy domain.

Value objects are immutable descriptors that provide type safety and
domain semantics for identifiers and tenant attributes.
"""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass
from enum import StrEnum

from tenancy.domain.exceptions import InvalidSlugError, InvalidStatusTransitionError

SLUG_PATTERN = re.compile(r"^[a-z0-9-]+$")
POSTGRES_IDENTIFIER_MAX_LENGTH = 63
DIGIT_PREFIX = "t_"

_NON_ALPHANUMERIC = re.compile(r"[^a-z0-9]")


@dataclass(frozen=True)
class TenantId:
    """Canonical identifier of a tenant."""

    value: uuid.UUID

    def __str__(self) -> str:
        """Return string representation."""
        return str(self.value)

    @classmethod
    def generate(cls) -> TenantId:
        """Generate a new random TenantId."""
        return cls(value=uuid.uuid4())

    @classmethod
    def from_string(cls, value: str) -> TenantId:
        """Create TenantId from its string form.

        Raises:
            ValueError: If value is not a valid UUID
        """
        try:
            return cls(value=uuid.UUID(value))
        except (ValueError, AttributeError, TypeError) as e:
            raise ValueError(f"Invalid TenantId: {value}") from e


class TenantStatus(StrEnum):
    """Lifecycle status of a tenant.

    Only active tenants are routable. Deleted is terminal; records are
    soft-deleted and never removed during normal operation.
    """

    ACTIVE = "active"
    SUSPENDED = "suspended"
    DELETED = "deleted"

    @property
    def is_routable(self) -> bool:
        return self is TenantStatus.ACTIVE

    def can_transition_to(self, target: TenantStatus) -> bool:
        """Check whether moving from this status to ``target`` is allowed."""
        if self is TenantStatus.DELETED:
            return target is TenantStatus.DELETED
        return True

    def ensure_transition_to(self, target: TenantStatus) -> None:
        """Raise if moving from this status to ``target`` is not allowed.

        Raises:
            InvalidStatusTransitionError: If the transition is illegal
        """
        if not self.can_transition_to(target):
            raise InvalidStatusTransitionError(
                f"Cannot change tenant status from '{self}' to '{target}'"
            )


class OnboardingStep(StrEnum):
    """Steps of the tenant onboarding saga, used to tag failures."""

    ORG_CREATION = "ORG_CREATION"
    DATABASE_CREATION = "DATABASE_CREATION"
    DATABASE_MIGRATION = "DATABASE_MIGRATION"
    USER_CREATION = "USER_CREATION"
    USER_ORG_ASSIGNMENT = "USER_ORG_ASSIGNMENT"
    ROLE_ASSIGNMENT = "ROLE_ASSIGNMENT"


@dataclass(frozen=True)
class TenantLimits:
    """Resource limits granted to a tenant."""

    max_users: int
    max_storage_gb: int

    def __post_init__(self) -> None:
        if self.max_users < 1:
            raise ValueError(f"max_users must be >= 1, got {self.max_users}")
        if self.max_storage_gb < 1:
            raise ValueError(
                f"max_storage_gb must be >= 1, got {self.max_storage_gb}"
            )

    def as_dict(self) -> dict[str, int]:
        return {"max_users": self.max_users, "max_storage_gb": self.max_storage_gb}


def validate_slug(slug: str) -> str:
    """Validate a tenant slug and return it unchanged.

    Raises:
        InvalidSlugError: If the slug is empty or has characters outside
            ``[a-z0-9-]``
    """
    if not slug or not SLUG_PATTERN.match(slug):
        raise InvalidSlugError(
            f"Invalid tenant slug '{slug}': use lowercase letters, digits and hyphens"
        )
    return slug


def derive_database_name(
    slug: str, max_length: int = POSTGRES_IDENTIFIER_MAX_LENGTH
) -> str:
    """Derive the physical database name for a tenant slug.

    The result is lowercase, has every non-alphanumeric character replaced
    by an underscore, is prefixed with ``t_`` when it would start with a
    digit, and is truncated to ``max_length``. The same slug always yields
    the same name.

    Args:
        slug: Tenant slug (or any tenant name)
        max_length: Maximum length of the returned name

    Returns:
        Database name safe to use as a PostgreSQL identifier

    Raises:
        InvalidSlugError: If the slug is empty or blank
    """
    if max_length <= len(DIGIT_PREFIX):
        raise ValueError(f"max_length must be > {len(DIGIT_PREFIX)}")
    if not slug or not slug.strip():
        raise InvalidSlugError("Cannot derive a database name from an empty slug")

    name = _NON_ALPHANUMERIC.sub("_", slug.strip().lower())
    if name[0].isdigit():
        name = DIGIT_PREFIX + name
    return name[:max_length]
