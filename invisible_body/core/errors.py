"""Exception types shared by the store, intake and API layers."""

from __future__ import annotations


class StoreError(RuntimeError):
    """A realtime store read/write/subscribe failed at the transport level."""


class VoteRejected(ValueError):
    """A vote failed validation; `reason` is safe to show to the viewer."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class VoteSubmissionFailed(RuntimeError):
    """A valid vote could not be written to the store."""

    def __init__(self, reason: str = "Submission failed. Please try again in a moment.") -> None:
        super().__init__(reason)
        self.reason = reason
