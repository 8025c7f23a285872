"""
ProjectFlow — Reconciliation Queue.

Optimistic store updates are mirrored to the REST API in the background.
Each mirrored mutation becomes a SyncJob whose status (pending, synced,
failed) stays visible, so callers and tests can observe the outcome instead
of a logged-and-forgotten call.

Policy:
- jobs are sent one at a time in enqueue (dispatch) order,
- a failed job is logged and marked failed; it is never retried and the
  local state is never rolled back,
- enqueueing never blocks and never raises,
- only the latest job per entity and a bounded history of finished jobs
  are kept for inspection.
"""

from __future__ import annotations

import asyncio
import contextlib
import itertools
import logging
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from projectflow.ports.remote_port import RemoteError

if TYPE_CHECKING:
    from projectflow.ports.remote_port import RemotePort
    from projectflow.ports.session_port import SessionPort

logger = logging.getLogger(__name__)

JOB_HISTORY = 200
FAILED_HISTORY = 100


class SyncOp(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    SIGN_OUT = "sign_out"


class SyncStatus(str, Enum):
    PENDING = "pending"
    SYNCED = "synced"
    FAILED = "failed"


@dataclass(eq=False)
class SyncJob:
    """One background remote call mirroring a local mutation."""

    collection: str          # REST collection, "" for sign-out
    op: SyncOp
    entity_id: str = ""
    payload: dict[str, Any] | None = None
    seq: int = 0
    status: SyncStatus = SyncStatus.PENDING
    error: str = ""
    result: Any = None
    _done: asyncio.Event = field(default_factory=asyncio.Event, repr=False)

    @property
    def done(self) -> bool:
        return self.status != SyncStatus.PENDING

    def _finish(self, status: SyncStatus, *, error: str = "", result: Any = None) -> None:
        self.status = status
        self.error = error
        self.result = result
        self._done.set()


class SyncQueue:
    """FIFO queue of SyncJobs sent to a RemotePort."""

    def __init__(self, remote: RemotePort, session: SessionPort | None = None) -> None:
        self._remote = remote
        self._session = session
        self._pending: deque[SyncJob] = deque()
        self._in_flight: SyncJob | None = None
        self._history: deque[SyncJob] = deque(maxlen=JOB_HISTORY)
        self._failed: deque[SyncJob] = deque(maxlen=FAILED_HISTORY)
        self._latest: dict[tuple[str, str], SyncJob] = {}
        self._seq = itertools.count(1)
        self._lock = asyncio.Lock()
        self._wakeup = asyncio.Event()
        self._worker: asyncio.Task | None = None

    # ------------------------------------------------------------------
    # Enqueue
    # ------------------------------------------------------------------

    def enqueue(
        self,
        collection: str,
        op: SyncOp,
        entity_id: str = "",
        payload: dict[str, Any] | None = None,
    ) -> SyncJob:
        job = SyncJob(
            collection=collection,
            op=op,
            entity_id=entity_id,
            payload=payload,
            seq=next(self._seq),
        )
        self._pending.append(job)
        self._latest[(collection, entity_id)] = job
        self._wakeup.set()
        logger.debug("Queued %s %s/%s (#%d)", op.value, collection, entity_id, job.seq)
        return job

    def enqueue_sign_out(self) -> SyncJob:
        return self.enqueue("", SyncOp.SIGN_OUT)

    # ------------------------------------------------------------------
    # Sending
    # ------------------------------------------------------------------

    async def flush(self) -> list[SyncJob]:
        """Send every pending job in FIFO order and return the processed jobs."""
        processed: list[SyncJob] = []
        async with self._lock:
            while self._pending:
                job = self._pending.popleft()
                self._in_flight = job
                try:
                    await self._send(job)
                finally:
                    self._in_flight = None
                self._record(job)
                processed.append(job)
        return processed

    async def _send(self, job: SyncJob) -> None:
        try:
            result = await self._call(job)
        except (RemoteError, ValueError) as exc:
            logger.warning(
                "Background %s %s/%s failed: %s",
                job.op.value, job.collection, job.entity_id, exc,
            )
            job._finish(SyncStatus.FAILED, error=str(exc))
            return
        except Exception as exc:
            logger.exception(
                "Background %s %s/%s crashed", job.op.value, job.collection, job.entity_id,
            )
            job._finish(SyncStatus.FAILED, error=repr(exc))
            return
        job._finish(SyncStatus.SYNCED, result=result)
        logger.debug("Synced %s %s/%s", job.op.value, job.collection, job.entity_id)

    def _record(self, job: SyncJob) -> None:
        self._history.append(job)
        if job.status == SyncStatus.FAILED:
            self._failed.append(job)
        key = (job.collection, job.entity_id)
        if (
            job.op == SyncOp.DELETE
            and job.status == SyncStatus.SYNCED
            and self._latest.get(key) is job
        ):
            del self._latest[key]

    async def _call(self, job: SyncJob) -> Any:
        if job.op == SyncOp.SIGN_OUT:
            if self._session is not None:
                await self._session.sign_out()
            return None

        coll = self._remote.collection(job.collection)
        if job.op == SyncOp.CREATE:
            return await coll.create(job.payload or {})
        if job.op == SyncOp.UPDATE:
            return await coll.update(job.entity_id, job.payload or {})
        if job.op == SyncOp.DELETE:
            return await coll.delete(job.entity_id)
        raise ValueError(f"Unknown sync operation: {job.op}")

    # ------------------------------------------------------------------
    # Background worker
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Run a background task that flushes whenever jobs arrive."""
        if self._worker is not None and not self._worker.done():
            return
        self._worker = asyncio.get_running_loop().create_task(self._run())
        logger.info("Sync worker started")

    async def _run(self) -> None:
        while True:
            await self._wakeup.wait()
            self._wakeup.clear()
            try:
                await self.flush()
            except Exception:
                logger.exception("Sync worker flush failed")

    async def stop(self, drain: bool = True) -> None:
        """Stop the worker; by default send whatever is still pending first."""
        if self._worker is not None:
            self._worker.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._worker
            self._worker = None
            logger.info("Sync worker stopped")
        if drain:
            await self.flush()

    # ------------------------------------------------------------------
    # Outcome inspection
    # ------------------------------------------------------------------

    async def wait_for(self, job: SyncJob) -> SyncStatus:
        """Wait until job has been sent (by the worker or a flush)."""
        if not job.done:
            if self._worker is None or self._worker.done():
                await self.flush()
            await job._done.wait()
        return job.status

    @property
    def jobs(self) -> list[SyncJob]:
        """Recently finished jobs followed by the ones still pending."""
        return list(self._history) + self.pending

    @property
    def pending(self) -> list[SyncJob]:
        head = [self._in_flight] if self._in_flight is not None else []
        return head + list(self._pending)

    @property
    def failed(self) -> list[SyncJob]:
        return list(self._failed)

    def status_of(self, collection: str, entity_id: str) -> SyncStatus | None:
        """Status of the most recent job for an entity, or None if never queued."""
        job = self._latest.get((collection, entity_id))
        return job.status if job is not None else None
