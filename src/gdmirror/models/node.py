"""Data model for remote Drive objects."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Optional

from gdmirror.util.mime import is_folder
from gdmirror.util.time import parse_rfc3339, to_rfc3339


@dataclass(slots=True, frozen=True)
class Node:
    """
    One remote file or folder as seen in a folder listing.

    Notes:
        - parent_id is the folder whose listing produced this node, not the
          object's own parents list (multi-parent objects get one Node per
          listing they appear in).
        - The root of a crawl is never represented as a Node.
    """

    id: str
    name: str
    mime_type: str
    parent_id: Optional[str] = None

    size: Optional[int] = None
    md5_checksum: Optional[str] = None
    modified_time: Optional[datetime] = None

    @property
    def is_folder(self) -> bool:
        return is_folder(self.mime_type)

    def with_parent(self, parent_id: str) -> Node:
        if self.parent_id == parent_id:
            return self
        return replace(self, parent_id=parent_id)

    def to_dict(self) -> dict[str, Any]:
        """Serialize without parent_id (the owning FolderRecord implies it)."""
        data: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "mimeType": self.mime_type,
        }
        if self.size is not None:
            data["size"] = self.size
        if self.md5_checksum is not None:
            data["md5Checksum"] = self.md5_checksum
        if self.modified_time is not None:
            data["modifiedTime"] = to_rfc3339(self.modified_time)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any], parent_id: Optional[str] = None) -> Node:
        """Build a Node from a Drive API file resource (or a to_dict() payload)."""
        file_id = data.get("id")
        name = data.get("name", "")
        mime_type = data.get("mimeType", "")

        size = None
        if isinstance(data.get("size"), str) and data["size"].isdigit():
            size = int(data["size"])
        elif isinstance(data.get("size"), int):
            size = data["size"]

        md5 = data.get("md5Checksum")

        modified_time = None
        if isinstance(data.get("modifiedTime"), str):
            try:
                modified_time = parse_rfc3339(data["modifiedTime"])
            except ValueError:
                modified_time = None

        return cls(
            id=file_id if isinstance(file_id, str) else "",
            name=name if isinstance(name, str) else "",
            mime_type=mime_type if isinstance(mime_type, str) else "",
            parent_id=parent_id,
            size=size,
            md5_checksum=md5 if isinstance(md5, str) else None,
            modified_time=modified_time,
        )
