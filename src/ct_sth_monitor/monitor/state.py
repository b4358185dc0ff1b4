"""
Per-Log monitor state.

The only state the monitor carries between cycles is the last STH it
accepted for a Log; the validator needs it for the monotonic timestamp
check. LogState owns that reference. It can be seeded from storage so the
check survives restarts.
"""

from __future__ import annotations

from ct_sth_monitor.models import SignedTreeHead
from ct_sth_monitor.storage.protocol import STHReader


class LogState:
    """Last accepted STH for one Log.

    Mutated only by the pipeline that owns it, once per stored STH.
    """

    def __init__(self, log_url: str, reader: STHReader | None = None):
        """Initialize state tracker.

        Args:
            log_url: Log this state belongs to
            reader: Optional storage to resume from
        """
        self.log_url = log_url
        self.reader = reader
        self.last_accepted: SignedTreeHead | None = None
        self.accepted_count = 0

    async def load(self) -> SignedTreeHead | None:
        """Seed ``last_accepted`` from storage.

        Returns:
            The STH loaded, or None if there was nothing to resume from
        """
        if self.reader is None:
            return None
        self.last_accepted = await self.reader.latest_sth(self.log_url)
        return self.last_accepted

    def accept(self, sth: SignedTreeHead) -> None:
        """Record ``sth`` as the newest accepted STH."""
        self.last_accepted = sth
        self.accepted_count += 1
