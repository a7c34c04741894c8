"""Attempt model - one failed attempt of a retried operation"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Attempt:
    """Represents a failed attempt inside a single retry run

    Only lives for the duration of one executor invocation.
    """

    index: int  # 0-based attempt counter
    error: Optional[BaseException] = None  # Failure raised by this attempt
    delay: Optional[float] = None  # Seconds to wait before the next attempt

    def __post_init__(self):
        """Validate attempt data"""
        if self.index < 0:
            raise ValueError("Attempt index must be >= 0")
        if self.delay is not None and self.delay < 0:
            raise ValueError("Delay must be >= 0")

    @property
    def number(self) -> int:
        """1-based attempt number, as shown in logs"""
        return self.index + 1
