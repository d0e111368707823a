"""
Global crawl budget: counters that gate whether new links may be admitted.
"""

from dataclasses import dataclass


@dataclass
class BudgetState:
    """
    Counters for one crawl run.

    Mutated only from the reactor loop, so no locking is needed. The
    counters keep ``scheduled_total == completed + pending`` at all times.
    """
    max_requests: int
    max_total: int
    pending: int = 0
    completed: int = 0
    scheduled_total: int = 0
    peak_pending: int = 0

    def admit(self, count: int = 1):
        """Account for ``count`` newly admitted fetches."""
        if count < 0:
            raise ValueError("count must be non-negative")
        self.pending += count
        self.scheduled_total += count
        self.peak_pending = max(self.peak_pending, self.pending)

    def complete(self) -> int:
        """Account for one processed fetch and return its ordinal."""
        if self.pending <= 0:
            raise RuntimeError("complete() called with no pending fetches")
        ordinal = self.completed
        self.completed += 1
        self.pending -= 1
        return ordinal

    def allows_expansion(self) -> bool:
        """Page-level gate, evaluated once before a page's links are sampled."""
        return (self.pending < self.max_requests and
                (self.completed + self.pending) < self.max_total)

    def headroom(self) -> int:
        """How many more fetches may be admitted without breaching either cap."""
        return max(0, min(self.max_requests - self.pending,
                          self.max_total - self.scheduled_total))

    @property
    def exhausted(self) -> bool:
        return self.pending == 0

    def to_dict(self) -> dict:
        return {
            'pending': self.pending,
            'completed': self.completed,
            'scheduled_total': self.scheduled_total,
            'peak_pending': self.peak_pending,
        }
