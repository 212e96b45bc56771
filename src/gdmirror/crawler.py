"""Recursive, resumable crawl of a Drive folder tree."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

from gdmirror.controller import DriveController
from gdmirror.errors import (
    AuthError,
    CapacityExceededError,
    GDMirrorError,
)
from gdmirror.models import Node, summarize
from gdmirror.store import CheckpointStore
from gdmirror.util.progress import ProgressTicker
from gdmirror.util.time import now_utc

logger = logging.getLogger(__name__)

# Errors after which no further listing can succeed.
_FATAL_ERRORS = (AuthError, CapacityExceededError)


@dataclass(slots=True, frozen=True)
class CrawlProgress:
    discovered: int
    in_flight: int
    queued: int


@dataclass(slots=True)
class CrawlResult:
    """Flat list of every node under the root, plus folders not fully read."""

    root_id: str
    nodes: list[Node]
    unfinished: list[str] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.unfinished


ProgressCallback = Callable[[CrawlProgress], None]


@dataclass
class _CrawlState:
    queue: asyncio.Queue[str]
    refresh_all: bool
    with_timestamps: bool
    use_service_identity: bool
    nodes: list[Node] = field(default_factory=list)
    unfinished: list[str] = field(default_factory=list)
    seen: set[str] = field(default_factory=set)
    in_flight: int = 0
    failure: Optional[BaseException] = None


class TreeCrawler:
    """
    Crawl a folder tree with a single concurrency bound for the whole tree.

    Every discovered folder becomes a job on one queue served by
    `parallel_limit` workers, so the bound holds across all depths. Complete
    folder listings are written to the checkpoint store as soon as they are
    read; a folder whose listing stopped early is reported as unfinished, not
    descended into, and its previous checkpoint (if any) is kept.
    """

    def __init__(
        self,
        controller: DriveController,
        checkpoints: CheckpointStore,
        *,
        parallel_limit: int = 20,
        progress: Optional[ProgressCallback] = None,
        progress_interval: float = 1.0,
    ) -> None:
        if parallel_limit < 1:
            raise ValueError("parallel_limit must be at least 1")
        self._controller = controller
        self._checkpoints = checkpoints
        self._parallel_limit = parallel_limit
        self._progress = progress or _log_progress
        self._progress_interval = progress_interval

    async def crawl(
        self,
        root_id: str,
        *,
        refresh_all: bool = False,
        with_timestamps: bool = False,
        use_service_identity: bool = False,
    ) -> CrawlResult:
        """
        Return every node under root_id.

        Args:
            refresh_all: ignore checkpoints and list every folder again.
            with_timestamps: also fetch modifiedTime for listed children.
            use_service_identity: list with service identities instead of
                the primary account.

        Raises:
            AuthError / CredentialsExhaustedError, CapacityExceededError:
                the crawl cannot make progress.
            Exception: a checkpoint store failure, raised as is.
        """
        if refresh_all:
            self._checkpoints.clear_summary(root_id)

        state = _CrawlState(
            queue=asyncio.Queue(),
            refresh_all=refresh_all,
            with_timestamps=with_timestamps,
            use_service_identity=use_service_identity,
        )
        state.seen.add(root_id)
        state.queue.put_nowait(root_id)

        def report() -> None:
            self._progress(
                CrawlProgress(
                    discovered=len(state.nodes),
                    in_flight=state.in_flight,
                    queued=state.queue.qsize(),
                )
            )

        async with ProgressTicker(report, self._progress_interval):
            workers = [
                asyncio.create_task(self._worker(state))
                for _ in range(self._parallel_limit)
            ]
            try:
                await state.queue.join()
            finally:
                for worker in workers:
                    worker.cancel()
                await asyncio.gather(*workers, return_exceptions=True)

        if state.failure is not None:
            raise state.failure

        if state.unfinished:
            logger.warning(
                "Crawl of %s finished with %d unread folder(s): %s",
                root_id,
                len(state.unfinished),
                ", ".join(state.unfinished),
            )
        else:
            summary = summarize(state.nodes)
            self._checkpoints.set_summary(root_id, summary.to_dict(), now_utc())
            logger.info(
                "Crawl of %s complete: %d files, %d folders",
                root_id,
                summary.file_count,
                summary.folder_count,
            )

        return CrawlResult(root_id=root_id, nodes=state.nodes, unfinished=state.unfinished)

    async def _worker(self, state: _CrawlState) -> None:
        while True:
            folder_id = await state.queue.get()
            try:
                if state.failure is None:
                    await self._visit(folder_id, state)
            except _FATAL_ERRORS as exc:
                if state.failure is None:
                    state.failure = exc
                _drain(state.queue)
            except GDMirrorError as exc:
                logger.warning("Listing folder %s failed: %s", folder_id, exc)
                state.unfinished.append(folder_id)
            except Exception as exc:
                logger.error("Crawling folder %s failed, stopping: %r", folder_id, exc)
                if state.failure is None:
                    state.failure = exc
                _drain(state.queue)
            finally:
                state.queue.task_done()

    async def _visit(self, folder_id: str, state: _CrawlState) -> None:
        record = None if state.refresh_all else self._checkpoints.get(folder_id)
        if record is not None:
            children = [child.with_parent(folder_id) for child in record.children]
        else:
            state.in_flight += 1
            try:
                listing = await self._controller.list_folder(
                    folder_id,
                    with_timestamps=state.with_timestamps,
                    use_service_identity=state.use_service_identity,
                )
            finally:
                state.in_flight -= 1

            children = listing.children
            if not listing.complete:
                state.unfinished.append(folder_id)
                state.nodes.extend(children)
                return

            subfolder_ids = [child.id for child in children if child.is_folder]
            self._checkpoints.upsert(folder_id, children, subfolder_ids)

        state.nodes.extend(children)
        for child in children:
            if child.is_folder and child.id not in state.seen:
                state.seen.add(child.id)
                state.queue.put_nowait(child.id)


def load_cached_tree(checkpoints: CheckpointStore, root_id: str) -> Optional[list[Node]]:
    """
    Rebuild the flat node list of root_id from checkpoints alone.

    Returns None if any folder in the tree has no checkpoint (an earlier crawl
    was interrupted or left that folder unfinished).
    """
    nodes: list[Node] = []
    pending = [root_id]
    seen = {root_id}

    while pending:
        folder_id = pending.pop()
        record = checkpoints.get(folder_id)
        if record is None:
            return None
        for child in record.children:
            nodes.append(child.with_parent(folder_id))
        for sub_id in record.subfolder_ids:
            if sub_id not in seen:
                seen.add(sub_id)
                pending.append(sub_id)

    return nodes


def _drain(queue: asyncio.Queue[str]) -> None:
    while True:
        try:
            queue.get_nowait()
        except asyncio.QueueEmpty:
            return
        queue.task_done()


def _log_progress(progress: CrawlProgress) -> None:
    logger.info(
        "Discovered %d | in flight %d | queued %d",
        progress.discovered,
        progress.in_flight,
        progress.queued,
    )
