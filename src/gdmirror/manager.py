"""DriveMirror: wires credentials, stores and engines behind one object."""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional, Sequence, Union

from gdmirror.auth import (
    DEFAULT_SCOPES,
    CredentialPool,
    GoogleIdentity,
    PrimaryAuthInfo,
    ServiceAccountDirectory,
)
from gdmirror.config import MirrorConfig
from gdmirror.controller import DriveController, RequestExecutor, RetryPolicy
from gdmirror.copier import Chooser, CopyOrchestrator, CopyResult
from gdmirror.crawler import TreeCrawler, load_cached_tree
from gdmirror.dedupe import DedupeResult, find_duplicates, trash_nodes
from gdmirror.errors import InvalidArgumentError, NotFoundError
from gdmirror.models import Node, TreeSummary, summarize
from gdmirror.store import (
    CheckpointStore,
    HashIndex,
    SqliteStore,
    TaskStore,
    install_shutdown_hook,
)
from gdmirror.util.ids import is_valid_id

logger = logging.getLogger(__name__)

# (file_count, folder_count) -> proceed?
ConfirmCallback = Callable[[int, int], Union[bool, Awaitable[bool]]]


@dataclass(slots=True)
class CountResult:
    """
    Summary of a tree.

    cached is True when the result came from checkpoints without any listing
    call; nodes is empty when only the stored summary was used.
    """

    root_id: str
    summary: TreeSummary
    nodes: list[Node] = field(default_factory=list)
    unfinished: list[str] = field(default_factory=list)
    cached: bool = False


class DriveMirror:
    """
    High-level API: count, copy and dedupe Drive folder trees.

    By default the SQLite task store gets a shutdown hook, so a copy cut short
    by a signal or an uncaught exception leaves its task `interrupted`.
    """

    def __init__(
        self,
        primary: Optional[PrimaryAuthInfo] = None,
        config: Optional[MirrorConfig] = None,
        *,
        scopes: Sequence[str] = DEFAULT_SCOPES,
        chooser: Optional[Chooser] = None,
        install_hook: bool = True,
    ) -> None:
        config = config or MirrorConfig()
        store = SqliteStore(config.db_path)
        pool = CredentialPool(
            ServiceAccountDirectory(config.sa_dir, scopes),
            GoogleIdentity.from_primary(primary, scopes) if primary is not None else None,
            batch_size=config.sa_batch_size,
            service_margin=config.service_margin,
        )
        executor = RequestExecutor(
            pool,
            RetryPolicy(
                retry_limit=config.retry_limit,
                timeout_base=config.timeout_base,
                timeout_max=config.timeout_max,
                backoff=config.backoff,
            ),
            verbose=config.verbose,
        )
        controller = DriveController(
            executor,
            supports_all_drives=config.supports_all_drives,
            page_size=config.page_size,
        )
        self._setup(config, controller, store, store, store, pool, chooser)
        if install_hook:
            install_shutdown_hook(store)

    @classmethod
    def from_components(
        cls,
        controller: DriveController,
        *,
        checkpoints: CheckpointStore,
        tasks: TaskStore,
        hash_index: Optional[HashIndex] = None,
        pool: Optional[CredentialPool] = None,
        config: Optional[MirrorConfig] = None,
        chooser: Optional[Chooser] = None,
    ) -> "DriveMirror":
        """Create a mirror from pre-built parts (useful for tests)."""
        obj = cls.__new__(cls)
        obj._setup(config or MirrorConfig(), controller, checkpoints, tasks, hash_index, pool, chooser)
        return obj

    def _setup(
        self,
        config: MirrorConfig,
        controller: DriveController,
        checkpoints: CheckpointStore,
        tasks: TaskStore,
        hash_index: Optional[HashIndex],
        pool: Optional[CredentialPool],
        chooser: Optional[Chooser],
    ) -> None:
        self._config = config
        self._controller = controller
        self._checkpoints = checkpoints
        self._tasks = tasks
        self._hash_index = hash_index
        self._pool = pool
        self._reload_task: Optional[asyncio.Task[None]] = None
        self._crawler = TreeCrawler(
            controller,
            checkpoints,
            parallel_limit=config.parallel_limit,
            progress_interval=config.progress_interval,
        )
        self._copier = CopyOrchestrator(
            controller,
            self._crawler,
            tasks,
            parallel_limit=config.parallel_limit,
            hash_index=hash_index,
            chooser=chooser,
            auto_continue=config.server_mode,
            progress_interval=config.progress_interval,
        )

    @property
    def config(self) -> MirrorConfig:
        return self._config

    @property
    def crawler(self) -> TreeCrawler:
        return self._crawler

    # ----------------------------
    # Lifecycle
    # ----------------------------
    async def start(self) -> None:
        """Start background work (periodic service identity reload in server mode)."""
        if self._config.server_mode and self._pool is not None and self._reload_task is None:
            self._reload_task = self._pool.start_reload_timer(self._config.sa_reload_interval)

    async def close(self) -> None:
        if self._reload_task is not None:
            self._reload_task.cancel()
            try:
                await self._reload_task
            except asyncio.CancelledError:
                pass
            self._reload_task = None

    async def __aenter__(self) -> "DriveMirror":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    # ----------------------------
    # Operations
    # ----------------------------
    async def get_info(self, object_id: str, *, use_service_identity: bool = False) -> Optional[Node]:
        """Return an object's metadata, or None if it is inaccessible."""
        _require_valid_id(object_id, "object_id")
        return await self._controller.get(object_id, use_service_identity=use_service_identity)

    async def count(
        self,
        root_id: str,
        *,
        refresh: bool = False,
        sort: Optional[str] = None,
        use_service_identity: bool = False,
    ) -> CountResult:
        """
        Summarize the tree under root_id.

        Without refresh, a stored summary or a fully checkpointed tree is used
        before any listing call is made.
        """
        _require_valid_id(root_id, "root_id")

        if not refresh:
            record = self._checkpoints.get(root_id)
            if sort is None and record is not None and record.summary is not None:
                logger.info("Using stored summary of %s (%s)", root_id, record.updated_at)
                return CountResult(
                    root_id=root_id,
                    summary=TreeSummary.from_dict(record.summary),
                    cached=True,
                )
            nodes = load_cached_tree(self._checkpoints, root_id)
            if nodes is not None:
                logger.info("Using checkpointed tree of %s", root_id)
                return CountResult(
                    root_id=root_id,
                    summary=summarize(nodes, sort=sort),
                    nodes=nodes,
                    cached=True,
                )

        root = await self._controller.get(root_id, use_service_identity=use_service_identity)
        if root is None:
            raise NotFoundError("Object is inaccessible", details={"id": root_id})
        if not root.is_folder:
            return CountResult(root_id=root_id, summary=summarize([root], sort=sort), nodes=[root])

        crawl = await self._crawler.crawl(
            root_id,
            refresh_all=refresh,
            use_service_identity=use_service_identity,
        )
        return CountResult(
            root_id=root_id,
            summary=summarize(crawl.nodes, sort=sort),
            nodes=crawl.nodes,
            unfinished=crawl.unfinished,
        )

    async def copy(
        self,
        source_id: str,
        target_id: Optional[str] = None,
        *,
        name: Optional[str] = None,
        min_size: Optional[int] = None,
        refresh: bool = False,
        use_service_identity: bool = False,
        create_root: bool = True,
        copy_folders: bool = True,
    ) -> Optional[CopyResult]:
        """Copy source_id into target_id (default: config.default_target)."""
        target_id = target_id or self._config.default_target
        if not target_id:
            raise InvalidArgumentError("Destination id is required (no default target configured)")
        _require_valid_id(source_id, "source_id")
        _require_valid_id(target_id, "target_id")

        return await self._copier.copy(
            source_id,
            target_id,
            name=name,
            min_size=min_size,
            refresh=refresh,
            use_service_identity=use_service_identity,
            create_root=create_root,
            copy_folders=copy_folders,
        )

    async def dedupe(
        self,
        root_id: str,
        *,
        refresh: bool = False,
        use_service_identity: bool = False,
        yes: bool = False,
        confirm: Optional[ConfirmCallback] = None,
    ) -> Optional[DedupeResult]:
        """
        Trash duplicate files and duplicate empty folders under root_id.

        Nothing is trashed unless `yes` is set or `confirm(file_count,
        folder_count)` returns true; None is returned in that case.
        """
        _require_valid_id(root_id, "root_id")

        nodes = None if refresh else load_cached_tree(self._checkpoints, root_id)
        if nodes is None:
            crawl = await self._crawler.crawl(
                root_id,
                refresh_all=refresh,
                use_service_identity=use_service_identity,
            )
            nodes = crawl.nodes

        dupes = find_duplicates(nodes)
        folder_count = sum(1 for node in dupes if node.is_folder)
        file_count = len(dupes) - folder_count
        if not dupes:
            logger.info("No duplicates under %s", root_id)
            return DedupeResult()

        if not yes:
            if confirm is None:
                logger.info(
                    "Found %d duplicate files and %d empty duplicate folders; not confirmed",
                    file_count,
                    folder_count,
                )
                return None
            answer = confirm(file_count, folder_count)
            if inspect.isawaitable(answer):
                answer = await answer
            if not answer:
                return None

        return await trash_nodes(
            self._controller,
            dupes,
            parallel_limit=self._config.parallel_limit,
            use_service_identity=use_service_identity,
        )

    async def save_hashes(
        self,
        root_id: str,
        *,
        min_size: Optional[int] = None,
        refresh: bool = False,
        use_service_identity: bool = False,
    ) -> int:
        """Index the md5 of every file under root_id; return the number of new rows."""
        if self._hash_index is None:
            raise InvalidArgumentError("No hash index configured")
        _require_valid_id(root_id, "root_id")

        crawl = await self._crawler.crawl(
            root_id,
            refresh_all=refresh,
            use_service_identity=use_service_identity,
        )
        added = 0
        for node in crawl.nodes:
            if node.is_folder or not node.md5_checksum:
                continue
            if min_size is not None and (node.size or 0) < min_size:
                continue
            if self._hash_index.add(node.id, node.md5_checksum):
                added += 1
        logger.info("Added %d md5 records", added)
        return added


def _require_valid_id(value: str, name: str) -> None:
    if not is_valid_id(value):
        raise InvalidArgumentError(f"Invalid {name}", details={name: value})
