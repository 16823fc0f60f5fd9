"""
Undo log for all-or-nothing state changes.

Every state mutation records a closure that undoes it. A snapshot is simply
the journal length at some point; reverting replays undo closures newest
first until the journal is back at that length. Snapshots nest: a call's
snapshot sits inside its batch's snapshot, so a failing call undoes only its
own effects while an aborted batch undoes everything.

Architecture:
    ::

        journal:  [u0][u1][u2][u3][u4]
                       ▲           ▲
                  batch snap    call snap
                    (=1)          (=4)

        revert_to(4) → runs u4           (call effects gone)
        revert_to(1) → runs u3, u2, u1   (batch effects gone)

Examples:
    >>> state = {"x": 1}
    >>> journal = Journal()
    >>> snap = journal.snapshot()
    >>> old = state["x"]; state["x"] = 2
    >>> journal.record(lambda: state.__setitem__("x", old))
    >>> journal.revert_to(snap)
    >>> state["x"]
    1
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import contextmanager

from callbatch.core.errors import CallBatchError

UndoFn = Callable[[], None]


class Journal:
    def __init__(self) -> None:
        self._entries: list[UndoFn] = []
        self._open_scopes = 0

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def open_scopes(self) -> int:
        return self._open_scopes

    def record(self, undo: UndoFn) -> None:
        self._entries.append(undo)

    def snapshot(self) -> int:
        return len(self._entries)

    def _check(self, snapshot: int) -> None:
        if not 0 <= snapshot <= len(self._entries):
            raise CallBatchError(f"Unknown snapshot {snapshot} (journal has {len(self._entries)} entries)")

    def revert_to(self, snapshot: int) -> None:
        """Undo every change recorded after ``snapshot``, newest first."""
        self._check(snapshot)
        while len(self._entries) > snapshot:
            self._entries.pop()()

    def commit(self, snapshot: int) -> None:
        """Keep every change recorded after ``snapshot``.

        Entries stay in the journal so an enclosing snapshot can still revert
        them. The log is discarded only when snapshot 0 is committed with no
        ``scope()`` still open around it.
        """
        self._check(snapshot)
        if snapshot == 0 and self._open_scopes == 0:
            self._entries.clear()

    @contextmanager
    def scope(self) -> Iterator[int]:
        """Commit on normal exit, revert if the block raises."""
        snapshot = self.snapshot()
        self._open_scopes += 1
        try:
            yield snapshot
        except BaseException:
            self._open_scopes -= 1
            self.revert_to(snapshot)
            raise
        self._open_scopes -= 1
        self.commit(snapshot)
