"""Google Drive API controller (internal use only)."""

from __future__ import annotations

import functools
import logging
from dataclasses import dataclass
from typing import Any, Optional

from gdmirror.errors import ApiError, AuthError, NotFoundError, PermissionError
from gdmirror.models import Node
from gdmirror.util.mime import FOLDER_MIME

from .executor import RequestExecutor
from .fields import FILE_FIELDS, LIST_FIELDS, LIST_FIELDS_WITH_TIMES, LIST_ORDER, MAX_PAGE_SIZE

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class FolderListing:
    """Children of one folder; complete is False if paging stopped early."""

    folder_id: str
    children: list[Node]
    complete: bool = True


class DriveController:
    """
    Async Drive API controller (internal only).

    Notes:
        - Requests are built with the discovery client and executed through
          the RequestExecutor, which injects the bearer token per attempt.
        - `supports_all_drives` is applied to all requests except listings of
          the "root" alias.
    """

    def __init__(
        self,
        executor: RequestExecutor,
        *,
        supports_all_drives: bool = True,
        page_size: int = MAX_PAGE_SIZE,
    ) -> None:
        self._executor = executor
        self._supports_all_drives = supports_all_drives
        self._page_size = min(page_size, MAX_PAGE_SIZE)
        self._service = _build_drive_service()

    @classmethod
    def from_service(
        cls,
        service: Any,
        executor: RequestExecutor,
        *,
        supports_all_drives: bool = True,
        page_size: int = MAX_PAGE_SIZE,
    ) -> "DriveController":
        """Create controller from a pre-built Drive service (useful for tests)."""
        obj = cls.__new__(cls)
        obj._executor = executor
        obj._supports_all_drives = supports_all_drives
        obj._page_size = min(page_size, MAX_PAGE_SIZE)
        obj._service = service
        return obj

    # ----------------------------
    # Read API
    # ----------------------------
    async def get(self, file_id: str, *, use_service_identity: bool = False) -> Optional[Node]:
        """
        Fetch one object's metadata.

        Returns None when the object is inaccessible (not found, no permission)
        or could not be read within the retry budget.
        """
        build = functools.partial(
            self._files().get,
            fileId=file_id,
            fields=FILE_FIELDS,
            **self._common_get_kwargs(),
        )
        try:
            data = await self._executor.execute(
                build,
                use_service_identity=use_service_identity,
                mutating=False,
            )
        except (NotFoundError, PermissionError) as exc:
            logger.warning("Object %s is inaccessible: %s", file_id, exc)
            return None

        if not data:
            return None
        parents = data.get("parents") or []
        return Node.from_dict(data, parent_id=parents[0] if parents else None)

    async def list_folder(
        self,
        folder_id: str,
        *,
        with_timestamps: bool = False,
        use_service_identity: bool = False,
    ) -> FolderListing:
        """
        List all non-trashed children of folder_id, page by page.

        Pages are requested strictly in order (each needs the previous page's
        cursor). If a page cannot be read within the retry budget, or the
        folder is inaccessible, the children read so far are returned with
        complete=False.
        """
        is_root_alias = folder_id == "root"
        params: dict[str, Any] = {
            "q": f"'{folder_id}' in parents and trashed = false",
            "orderBy": LIST_ORDER,
            "fields": LIST_FIELDS_WITH_TIMES if with_timestamps else LIST_FIELDS,
            "pageSize": self._page_size,
        }
        if not is_root_alias:
            params.update(self._common_list_kwargs())
        use_sa = use_service_identity and not is_root_alias

        children: list[Node] = []
        page_token: Optional[str] = None
        while True:
            page_params = dict(params)
            if page_token:
                page_params["pageToken"] = page_token
            build = functools.partial(self._files().list, **page_params)

            try:
                data = await self._executor.execute(
                    build,
                    use_service_identity=use_sa,
                    mutating=False,
                )
            except (NotFoundError, PermissionError) as exc:
                logger.warning("Folder %s is inaccessible: %s", folder_id, exc)
                return FolderListing(folder_id, children, complete=False)

            if data is None:
                logger.warning(
                    "Folder %s is not read completely (%d children so far)",
                    folder_id,
                    len(children),
                )
                return FolderListing(folder_id, children, complete=False)

            for item in data.get("files", []) or []:
                children.append(Node.from_dict(item, parent_id=folder_id))

            page_token = data.get("nextPageToken")
            if not page_token:
                break

        return FolderListing(folder_id, children, complete=True)

    # ----------------------------
    # Write API
    # ----------------------------
    async def create_folder(
        self,
        name: str,
        parent_id: str,
        *,
        use_service_identity: bool = False,
    ) -> str:
        """Create a folder and return its id."""
        body = {"name": name, "mimeType": FOLDER_MIME, "parents": [parent_id]}
        build = functools.partial(
            self._files().create,
            body=body,
            fields="id",
            **self._common_write_kwargs(),
        )
        data = await self._executor.execute(
            build,
            use_service_identity=use_service_identity,
            mutating=True,
        )
        return _require_id(data, "create_folder")

    async def copy(
        self,
        file_id: str,
        new_parent_id: str,
        *,
        use_service_identity: bool = False,
    ) -> str:
        """Copy a file into new_parent_id and return the new object's id."""
        build = functools.partial(
            self._files().copy,
            fileId=file_id,
            body={"parents": [new_parent_id]},
            fields="id",
            **self._common_write_kwargs(),
        )
        data = await self._executor.execute(
            build,
            use_service_identity=use_service_identity,
            mutating=True,
        )
        return _require_id(data, "copy")

    async def trash(self, file_id: str, *, use_service_identity: bool = False) -> None:
        """Move an object to the trash (recoverable)."""
        build = functools.partial(
            self._files().update,
            fileId=file_id,
            body={"trashed": True},
            fields="id",
            **self._common_write_kwargs(),
        )
        await self._executor.execute(
            build,
            use_service_identity=use_service_identity,
            mutating=True,
        )

    async def delete(self, file_id: str, *, use_service_identity: bool = False) -> None:
        """Delete an object permanently, bypassing the trash."""
        build = functools.partial(
            self._files().delete,
            fileId=file_id,
            **self._common_write_kwargs(),
        )
        await self._executor.execute(
            build,
            use_service_identity=use_service_identity,
            mutating=True,
        )

    # ----------------------------
    # Internals
    # ----------------------------
    def _files(self) -> Any:
        return self._service.files()

    def _common_get_kwargs(self) -> dict[str, Any]:
        if not self._supports_all_drives:
            return {}
        return {"supportsAllDrives": True}

    def _common_list_kwargs(self) -> dict[str, Any]:
        if not self._supports_all_drives:
            return {}
        return {"supportsAllDrives": True, "includeItemsFromAllDrives": True}

    def _common_write_kwargs(self) -> dict[str, Any]:
        if not self._supports_all_drives:
            return {}
        return {"supportsAllDrives": True}


def _require_id(data: Any, action: str) -> str:
    file_id = data.get("id") if isinstance(data, dict) else None
    if not isinstance(file_id, str) or not file_id:
        raise ApiError(
            "Drive did not return an id for the new object",
            details={"action": action},
        )
    return file_id


def _build_drive_service() -> Any:
    """
    Build a credential-less Drive v3 resource from the bundled discovery doc.

    Authorization is attached per request by the RequestExecutor.
    """
    try:
        import httplib2
        from googleapiclient.discovery import build
    except Exception as exc:  # pragma: no cover
        raise AuthError(
            "google-api-python-client is not available",
            details={"hint": "Install google-api-python-client"},
            cause=exc,
        ) from exc

    return build(
        "drive",
        "v3",
        http=httplib2.Http(),
        cache_discovery=False,
        static_discovery=True,
    )
