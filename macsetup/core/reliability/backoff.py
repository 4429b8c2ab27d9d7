"""
Backoff — bounded exponential delay with jitter.

Used by the reconciler when a declaration asks for extra apply
attempts. Sleeping is left to the caller so tests can inject a no-op.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Backoff:
    """Delay schedule: ``base * 2**(attempt-1)``, capped, plus up to 30% jitter."""

    base_delay: float = 1.0
    max_delay: float = 30.0
    jitter: float = 0.3

    def delay(self, attempt: int) -> float:
        """Seconds to wait before retry number ``attempt`` (1-based)."""
        if attempt < 1:
            return 0.0
        delay = min(self.base_delay * (2 ** (attempt - 1)), self.max_delay)
        return delay + random.uniform(0, delay * self.jitter)
