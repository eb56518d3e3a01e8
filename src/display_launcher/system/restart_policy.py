"""Bounded restart policy for the control server.

The policy only does arithmetic. Whoever owns the timer asks it how long to
wait and whether another attempt is allowed.
"""

from typing import Optional

from pydantic import BaseModel, Field


class RestartPolicy(BaseModel):
    """Fixed-cap retry policy with optional exponential backoff."""

    max_attempts: int = Field(
        default=5,
        description="Restarts allowed after the initial start fails",
        ge=0,
        le=100,
    )
    backoff_sec: float = Field(
        default=5.0,
        description="Delay before the first restart",
        ge=0.0,
    )
    backoff_multiplier: float = Field(
        default=1.0,
        description="Growth factor of the delay per attempt (1.0 = fixed)",
        ge=1.0,
    )
    max_backoff_sec: float = Field(
        default=60.0,
        description="Upper bound on any single delay",
        ge=0.0,
    )

    def allows(self, attempt: int) -> bool:
        """Check if restart number ``attempt`` (1-based) is permitted."""
        return 1 <= attempt <= self.max_attempts

    def delay_for(self, attempt: int) -> float:
        """Delay in seconds before restart number ``attempt`` (1-based)."""
        delay = self.backoff_sec * self.backoff_multiplier ** max(attempt - 1, 0)
        return min(delay, self.max_backoff_sec)


class RestartBudget:
    """Counts consecutive failures against a restart policy."""

    def __init__(self, policy: Optional[RestartPolicy] = None) -> None:
        self.policy = policy or RestartPolicy()
        self.attempts = 0

    @property
    def exhausted(self) -> bool:
        return self.attempts >= self.policy.max_attempts

    def record_failure(self) -> Optional[float]:
        """Record a failed start.

        Returns:
            Seconds to wait before retrying, or None if no retries remain
        """
        if self.exhausted:
            return None
        self.attempts += 1
        return self.policy.delay_for(self.attempts)

    def reset(self) -> None:
        """Forget past failures after a successful start."""
        self.attempts = 0
