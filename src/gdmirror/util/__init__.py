from .ids import ID_ALIASES, is_valid_id
from .mime import FOLDER_MIME, is_folder
from .progress import ProgressTicker
from .size import format_size, parse_size
from .time import as_utc, now_utc, parse_rfc3339, to_rfc3339

__all__ = [
    "ID_ALIASES",
    "is_valid_id",
    "FOLDER_MIME",
    "is_folder",
    "ProgressTicker",
    "parse_size",
    "format_size",
    "now_utc",
    "parse_rfc3339",
    "to_rfc3339",
    "as_utc",
]
