"""Duplicate detection over a flat tree snapshot, and trashing of duplicates."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Iterable

from gdmirror.controller import DriveController
from gdmirror.errors import GDMirrorError
from gdmirror.models import Node

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class DedupeResult:
    """Trashed duplicates, by kind, and the nodes that could not be trashed."""

    file_count: int = 0
    folder_count: int = 0
    failed: list[Node] = field(default_factory=list)


def find_duplicates(nodes: Iterable[Node]) -> list[Node]:
    """
    Return duplicate files followed by duplicate empty folders.

    A file is a duplicate if an earlier file in the snapshot has the same
    parent and md5; files without an md5 (Google Docs) are never reported.
    Folders sharing a parent and a name are reported only if all of them are
    empty; the first one seen is kept. A group with any non-empty member is
    left alone.
    """
    snapshot = list(nodes)
    files = [node for node in snapshot if not node.is_folder]
    folders = [node for node in snapshot if node.is_folder]

    groups: dict[tuple[object, str], list[Node]] = {}
    for folder in folders:
        groups.setdefault((folder.parent_id, folder.name), []).append(folder)

    non_empty = {node.parent_id for node in snapshot}
    empty_dupes: list[Node] = []
    for group in groups.values():
        if len(group) > 1 and all(folder.id not in non_empty for folder in group):
            empty_dupes.extend(group[1:])

    seen: set[tuple[object, object]] = set()
    file_dupes: list[Node] = []
    for node in files:
        if not node.md5_checksum:
            continue
        key = (node.parent_id, node.md5_checksum)
        if key in seen:
            file_dupes.append(node)
        else:
            seen.add(key)

    return file_dupes + empty_dupes


async def trash_nodes(
    controller: DriveController,
    nodes: list[Node],
    *,
    parallel_limit: int = 20,
    use_service_identity: bool = False,
) -> DedupeResult:
    """
    Move nodes to the trash with at most parallel_limit requests in flight.

    Individual failures are logged and collected in DedupeResult.failed.
    """
    semaphore = asyncio.Semaphore(parallel_limit)
    result = DedupeResult()

    async def trash(node: Node) -> None:
        async with semaphore:
            try:
                await controller.trash(node.id, use_service_identity=use_service_identity)
            except GDMirrorError as exc:
                logger.warning("Failed to trash %s (%s): %s", node.name, node.id, exc)
                result.failed.append(node)
                return
        if node.is_folder:
            result.folder_count += 1
            logger.info("Trashed folder %s", node.name)
        else:
            result.file_count += 1
            logger.info("Trashed file %s", node.name)

    await asyncio.gather(*(trash(node) for node in nodes))
    return result
