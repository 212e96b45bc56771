"""Field definitions for Google Drive API responses."""

from __future__ import annotations

FILE_FIELDS: str = (
    "id,"
    "name,"
    "mimeType,"
    "parents,"
    "size,"
    "md5Checksum,"
    "modifiedTime"
)

_LISTED_FILE_FIELDS: str = "id,name,mimeType,size,md5Checksum"

LIST_FIELDS: str = f"nextPageToken,files({_LISTED_FILE_FIELDS})"

LIST_FIELDS_WITH_TIMES: str = f"nextPageToken,files({_LISTED_FILE_FIELDS},modifiedTime)"

# Folders first so sub-folder listings can start while files are still paging.
LIST_ORDER: str = "folder,name desc"

MAX_PAGE_SIZE: int = 1000
