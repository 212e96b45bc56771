"""Resumable replication of a Drive folder tree into a destination folder."""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional, Union

from gdmirror.controller import DriveController
from gdmirror.crawler import TreeCrawler
from gdmirror.errors import InvalidStateError, NotFoundError, TaskRunningError
from gdmirror.models import CopyTask, Node, TaskStatus
from gdmirror.store import HashIndex, TaskStore
from gdmirror.util.progress import ProgressTicker
from gdmirror.util.time import now_utc

logger = logging.getLogger(__name__)


class ResumeChoice(str, Enum):
    """What to do with a task that already exists for (source, target)."""

    CONTINUE = "continue"
    RESTART = "restart"
    EXIT = "exit"


Chooser = Callable[[CopyTask], Union[ResumeChoice, str, Awaitable[Union[ResumeChoice, str]]]]


@dataclass(slots=True, frozen=True)
class CopyResult:
    """
    Outcome of a copy.

    task_id is None for a single-file copy, which is not tracked as a task.
    """

    root_id: str
    task_id: Optional[int]
    copied: int = 0
    folders_created: int = 0


class CopyOrchestrator:
    """
    Copy a folder tree, persisting enough state to resume after a crash.

    Per (source, target) pair a CopyTask records the source -> destination id
    mapping of every created folder (the destination root first) and the ids
    of all copied files. Continuing a task skips both; restarting one starts
    over in a new destination root.
    """

    def __init__(
        self,
        controller: DriveController,
        crawler: TreeCrawler,
        tasks: TaskStore,
        *,
        parallel_limit: int = 20,
        hash_index: Optional[HashIndex] = None,
        chooser: Optional[Chooser] = None,
        auto_continue: bool = False,
        progress_interval: float = 1.0,
    ) -> None:
        if parallel_limit < 1:
            raise ValueError("parallel_limit must be at least 1")
        self._controller = controller
        self._crawler = crawler
        self._tasks = tasks
        self._parallel_limit = parallel_limit
        self._hash_index = hash_index
        self._chooser = chooser
        self._auto_continue = auto_continue
        self._progress_interval = progress_interval

    async def copy(
        self,
        source_id: str,
        target_id: str,
        *,
        name: Optional[str] = None,
        min_size: Optional[int] = None,
        refresh: bool = False,
        use_service_identity: bool = False,
        create_root: bool = True,
        copy_folders: bool = True,
    ) -> Optional[CopyResult]:
        """
        Copy source_id (a folder or a single file) into target_id.

        Args:
            name: name of the new destination root (default: the source's name).
            min_size: skip files smaller than this many bytes.
            refresh: re-list every source folder instead of using checkpoints.
            create_root: if False, copy straight into target_id.
            copy_folders: if False, put every file directly in the destination
                root instead of replicating the folder structure.

        Returns:
            CopyResult, or None if the caller chose to leave an existing task
            untouched.

        Raises:
            NotFoundError: source is inaccessible.
            TaskRunningError: a copy of the same pair is already in progress.
            InvalidStateError: a previous task exists and no resume choice was given.
            CapacityExceededError, RetryExhaustedError, ...: the copy failed;
                the task is left in status `error`.
        """
        source = await self._controller.get(source_id, use_service_identity=use_service_identity)
        if source is None:
            raise NotFoundError(
                "Source is inaccessible, check the id and the account's permissions",
                details={"source_id": source_id},
            )

        if not source.is_folder:
            new_id = await self._copy_one(source, target_id, use_service_identity)
            return CopyResult(root_id=new_id, task_id=None, copied=1)

        task = self._tasks.get_task(source_id, target_id)
        if task is not None and task.status is TaskStatus.COPYING:
            raise TaskRunningError(
                "A copy of this source into this target is already running",
                details={"task_id": task.id, "source_id": source_id, "target_id": target_id},
            )

        if task is None:
            task_id = self._tasks.create_task(source_id, target_id)
            mapping_required = True
        else:
            task_id = task.id
            # Claim the pair before prompting so a concurrent copy sees it running.
            self._tasks.set_status(task_id, TaskStatus.COPYING)
            try:
                choice = await self._choose(task)
            except Exception:
                self._tasks.set_status(task_id, task.status)
                raise
            if choice is ResumeChoice.EXIT:
                self._tasks.set_status(task_id, task.status)
                logger.info("Leaving task %d (%s) untouched", task_id, task.status.value)
                return None
            if choice is ResumeChoice.RESTART:
                self._tasks.reset(task_id)
                mapping_required = True
            else:
                mapping_required = task.root_id is None

        try:
            if mapping_required:
                root_id = await self._new_root(source, target_id, name, create_root, use_service_identity)
                self._tasks.append_mapping(task_id, source_id, root_id)
            result = await self._replicate(
                task_id,
                source_id,
                min_size=min_size,
                refresh=refresh,
                use_service_identity=use_service_identity,
                copy_folders=copy_folders,
            )
        except Exception:
            self._tasks.set_status(task_id, TaskStatus.ERROR)
            raise

        self._tasks.set_status(task_id, TaskStatus.FINISHED, finished_at=now_utc())
        logger.info(
            "Task %d finished: %d folders created, %d files copied",
            task_id,
            result.folders_created,
            result.copied,
        )
        return result

    # ----------------------------
    # Internals
    # ----------------------------
    async def _choose(self, task: CopyTask) -> ResumeChoice:
        if self._auto_continue:
            return ResumeChoice.CONTINUE
        if self._chooser is None:
            raise InvalidStateError(
                "A previous copy task exists; choose continue, restart or exit",
                details={"task_id": task.id, "status": task.status.value},
            )
        choice = self._chooser(task)
        if inspect.isawaitable(choice):
            choice = await choice
        return ResumeChoice(choice)

    async def _new_root(
        self,
        source: Node,
        target_id: str,
        name: Optional[str],
        create_root: bool,
        use_service_identity: bool,
    ) -> str:
        if not create_root:
            return target_id
        return await self._controller.create_folder(
            name or source.name,
            target_id,
            use_service_identity=use_service_identity,
        )

    async def _replicate(
        self,
        task_id: int,
        source_id: str,
        *,
        min_size: Optional[int],
        refresh: bool,
        use_service_identity: bool,
        copy_folders: bool,
    ) -> CopyResult:
        crawl = await self._crawler.crawl(
            source_id,
            refresh_all=refresh,
            use_service_identity=use_service_identity,
        )
        if crawl.unfinished:
            logger.warning(
                "Source %s was not read completely; %d folder(s) will be missing",
                source_id,
                len(crawl.unfinished),
            )

        mapping = dict(self._tasks.list_mapping(task_id))
        root_id = mapping[source_id]

        folders_created = 0
        if copy_folders:
            folders = [node for node in crawl.nodes if node.is_folder]
            folders_created = await self._create_folders(
                task_id, source_id, folders, mapping, use_service_identity
            )

        completed = set(self._tasks.list_completed(task_id))
        files = [
            node
            for node in crawl.nodes
            if not node.is_folder
            and node.id not in completed
            and (min_size is None or (node.size or 0) >= min_size)
        ]
        copied = await self._copy_files(
            task_id,
            files,
            mapping if copy_folders else {},
            root_id,
            use_service_identity,
        )
        return CopyResult(
            root_id=root_id,
            task_id=task_id,
            copied=copied,
            folders_created=folders_created,
        )

    async def _create_folders(
        self,
        task_id: int,
        source_id: str,
        folders: list[Node],
        mapping: dict[str, str],
        use_service_identity: bool,
    ) -> int:
        """
        Create missing destination folders one source depth level at a time.

        Every folder in a level has its destination parent in `mapping` before
        the level starts. Any failure cancels the rest of the level and is
        raised; folders created before it stay in the mapping log.
        """
        by_parent: dict[str, list[Node]] = {}
        for folder in folders:
            by_parent.setdefault(folder.parent_id or source_id, []).append(folder)

        missing = sum(1 for folder in folders if folder.id not in mapping)
        if missing:
            logger.info("Creating %d folders", missing)

        semaphore = asyncio.Semaphore(self._parallel_limit)
        created = 0
        in_flight = 0

        async def create(folder: Node) -> None:
            nonlocal created, in_flight
            async with semaphore:
                in_flight += 1
                try:
                    new_id = await self._controller.create_folder(
                        folder.name,
                        mapping[folder.parent_id or source_id],
                        use_service_identity=use_service_identity,
                    )
                finally:
                    in_flight -= 1
            mapping[folder.id] = new_id
            self._tasks.append_mapping(task_id, folder.id, new_id)
            created += 1

        def report() -> None:
            logger.info("Folders created %d | in flight %d", created, in_flight)

        level = list(by_parent.get(source_id, []))
        seen = {folder.id for folder in level}
        async with ProgressTicker(report, self._progress_interval):
            while level:
                pending = [
                    asyncio.create_task(create(folder))
                    for folder in level
                    if folder.id not in mapping
                ]
                if pending:
                    done, not_done = await asyncio.wait(
                        pending, return_when=asyncio.FIRST_EXCEPTION
                    )
                    for task in not_done:
                        task.cancel()
                    if not_done:
                        await asyncio.gather(*not_done, return_exceptions=True)
                    for task in done:
                        if not task.cancelled() and task.exception() is not None:
                            raise task.exception()  # type: ignore[misc]

                next_level: list[Node] = []
                for folder in level:
                    for child in by_parent.get(folder.id, []):
                        if child.id not in seen:
                            seen.add(child.id)
                            next_level.append(child)
                level = next_level

        return created

    async def _copy_files(
        self,
        task_id: int,
        files: list[Node],
        mapping: dict[str, str],
        root_id: str,
        use_service_identity: bool,
    ) -> int:
        """
        Copy files with a fixed pool of workers over one queue.

        After the first failure no new copy is started; copies already in
        flight finish and are recorded, then the first failure is raised.
        """
        if not files:
            return 0
        logger.info("Copying %d files", len(files))

        queue: asyncio.Queue[Node] = asyncio.Queue()
        for node in files:
            queue.put_nowait(node)

        copied = 0
        in_flight = 0
        failure: Optional[Exception] = None

        async def worker() -> None:
            nonlocal copied, in_flight, failure
            while failure is None:
                try:
                    node = queue.get_nowait()
                except asyncio.QueueEmpty:
                    return
                dest = mapping.get(node.parent_id or "", root_id)
                in_flight += 1
                try:
                    await self._copy_one(node, dest, use_service_identity)
                except Exception as exc:
                    if failure is None:
                        failure = exc
                        logger.error("Copying file %s failed, stopping: %s", node.id, exc)
                    return
                finally:
                    in_flight -= 1
                self._tasks.append_completed(task_id, node.id)
                copied += 1

        def report() -> None:
            logger.info(
                "Files copied %d | in flight %d | pending %d",
                copied,
                in_flight,
                queue.qsize(),
            )

        workers = min(self._parallel_limit, len(files))
        async with ProgressTicker(report, self._progress_interval):
            await asyncio.gather(*(worker() for _ in range(workers)))

        if failure is not None:
            raise failure
        return copied

    async def _copy_one(self, node: Node, dest_id: str, use_service_identity: bool) -> str:
        """Copy one file; an indexed object with the same md5 is copied instead."""
        copy_id = node.id
        if self._hash_index is not None and node.md5_checksum:
            copy_id = self._hash_index.lookup(node.md5_checksum) or node.id
        if copy_id != node.id:
            logger.debug("Copying %s in place of %s (same md5)", copy_id, node.id)
            use_service_identity = True
        return await self._controller.copy(
            copy_id,
            dest_id,
            use_service_identity=use_service_identity,
        )
