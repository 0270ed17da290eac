"""Cooperative cancellation for workflow runs.

The controller checks the token between levels. Nodes already running are
allowed to finish.
"""

from __future__ import annotations

import asyncio


class CancellationToken:
    """One-shot cancellation flag.

    A child token reports cancelled when its parent is, so cancelling a
    run also stops the sub-workflows it started at their next level
    boundary.
    """

    __slots__ = ("_event", "_parent")

    def __init__(self, parent: CancellationToken | None = None) -> None:
        self._event = asyncio.Event()
        self._parent = parent

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        return self._parent is not None and self._parent.cancelled

    def child(self) -> CancellationToken:
        return CancellationToken(parent=self)

    def __repr__(self) -> str:
        return f"CancellationToken(cancelled={self.cancelled})"
