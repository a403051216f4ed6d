"""Cooperative scheduling of recursively-branching work on an asyncio loop.

Each unit of work runs inside a :class:`TaskNode`. While it runs, the work
may register nested units with :meth:`TaskNode.schedule`; those are posted to
the event loop and run on later turns, so a deep expansion yields control
between sibling branches. The branching factor is discovered lazily: once a
node's work returns, its share of the progress is split evenly across the
children it actually registered. Leaves credit their share to the
scheduler's running total, which therefore reaches 1.0 exactly when the
whole tree has completed.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)

Work = Callable[["TaskNode"], None]
DoneCallback = Callable[[], None]
ProgressCallback = Callable[[float], None]


class TaskNode:
    """One unit of work in a scheduled tree."""

    def __init__(
        self,
        scheduler: "CooperativeScheduler",
        fraction: float = 0.0,
        parent: Optional["TaskNode"] = None,
    ) -> None:
        self.scheduler = scheduler
        self.parent = parent
        self.fraction = fraction
        self.children: List[TaskNode] = []
        self.pending = 0
        self.done = False
        self._callbacks: List[DoneCallback] = []

    def schedule(self, work: Work, on_done: Optional[DoneCallback] = None) -> "TaskNode":
        """Register ``work`` as a child of this node and defer it to a later turn."""
        if self.done:
            raise RuntimeError("cannot schedule work on a completed task")
        child = TaskNode(self.scheduler, parent=self)
        self.children.append(child)
        self.pending += 1
        self.scheduler.post(child, work, on_done)
        return child

    def run(self, work: Work, on_done: Optional[DoneCallback] = None) -> None:
        """Execute ``work`` now; complete inline unless it scheduled children."""
        if on_done is not None:
            self._callbacks.append(on_done)
        work(self)
        if not self.children:
            self.scheduler.credit(self.fraction)
            self.fraction = 0.0
            self._finish()
            return
        share = self.fraction / len(self.children)
        for child in self.children:
            child.fraction = share
        self.fraction = 0.0

    def _child_done(self) -> None:
        self.pending -= 1
        if self.pending == 0:
            self._finish()

    def _finish(self) -> None:
        self.done = True
        for callback in self._callbacks:
            callback()
        if self.parent is not None:
            self.parent._child_done()


class CooperativeScheduler:
    """Run one task tree and report its completed fraction.

    The first exception raised by a deferred unit fails the tree: it is
    stored in ``error``, set on the future returned by :meth:`submit`, and
    every unit still queued is skipped.
    """

    def __init__(
        self,
        on_progress: Optional[ProgressCallback] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ) -> None:
        self.on_progress = on_progress
        self.total = 0.0
        self.root: Optional[TaskNode] = None
        self.error: Optional[BaseException] = None
        self._loop = loop
        self._future: Optional["asyncio.Future[float]"] = None

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def run(self, work: Work, on_done: Optional[DoneCallback] = None) -> TaskNode:
        """Start the tree rooted at ``work``; the root owns the whole unit of progress."""
        if self.root is not None:
            raise RuntimeError("scheduler already ran a task tree")
        self.root = TaskNode(self, fraction=1.0)
        self.root.run(work, on_done)
        return self.root

    def submit(self, work: Work) -> "asyncio.Future[float]":
        """Start the tree and return a future resolved with the final total."""
        future = self.loop.create_future()
        self._future = future

        def _resolve() -> None:
            if not future.done():
                future.set_result(self.total)

        self.run(work, on_done=_resolve)
        return future

    def post(self, node: TaskNode, work: Work, on_done: Optional[DoneCallback] = None) -> None:
        self.loop.call_soon(self._execute, node, work, on_done)

    def _execute(self, node: TaskNode, work: Work, on_done: Optional[DoneCallback]) -> None:
        if self.error is not None:
            return
        try:
            node.run(work, on_done)
        except Exception as exc:
            self.error = exc
            logger.error("Scheduled task failed: %r", exc)
            if self._future is None:
                raise
            if not self._future.done():
                self._future.set_exception(exc)

    def credit(self, fraction: float) -> None:
        if fraction <= 0:
            return
        self.total += fraction
        logger.debug("Progress %.4f", self.total)
        if self.on_progress is not None:
            self.on_progress(self.total)
