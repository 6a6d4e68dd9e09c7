"""Retry policy for binding a freshly created user to an organization.

Keycloak may not have indexed a just-created user when the membership
call arrives, so the call can fail with a "user not found" style error
even though the user exists. Those responses, and server errors, are
retried with linearly increasing delay up to a fixed attempt ceiling.
Anything else fails on the first attempt.
"""

from __future__ import annotations

from dataclasses import dataclass

from infrastructure.settings import IdentityProviderSettings

DEFAULT_RETRYABLE_MESSAGES: tuple[str, ...] = (
    "user does not exist",
    "user not found",
    "not found",
    "invalid user",
)


@dataclass(frozen=True)
class MembershipRetryPolicy:
    """Linear backoff policy for membership binding.

    Attributes:
        base_delay: Delay step in seconds; attempt n waits base_delay * n
        max_delay: Upper bound on a single delay in seconds
        max_attempts: Total attempts including the first
        retryable_messages: Lowercase fragments marking a 400 as transient
    """

    base_delay: float = 2.0
    max_delay: float = 10.0
    max_attempts: int = 15
    retryable_messages: tuple[str, ...] = DEFAULT_RETRYABLE_MESSAGES

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.base_delay < 0 or self.max_delay < 0:
            raise ValueError("delays must be >= 0")

    @classmethod
    def from_settings(cls, settings: IdentityProviderSettings) -> MembershipRetryPolicy:
        return cls(
            base_delay=settings.bind_retry_base_delay_seconds,
            max_delay=settings.bind_retry_max_delay_seconds,
            max_attempts=settings.bind_retry_max_attempts,
        )

    def delay_for(self, attempt: int) -> float:
        """Delay before the retry that follows failed attempt ``attempt`` (1-based)."""
        return min(self.base_delay * attempt, self.max_delay)

    def is_retryable(self, status_code: int | None, message: str) -> bool:
        """Classify a failed response.

        Args:
            status_code: HTTP status, or None for a transport failure
            message: Error text reported by the server

        Returns:
            True for transport failures, 5xx responses, and 400 responses
            whose message indicates the user is not visible yet
        """
        if status_code is None or status_code >= 500:
            return True
        if status_code == 400:
            lowered = (message or "").lower()
            return any(fragment in lowered for fragment in self.retryable_messages)
        return False
