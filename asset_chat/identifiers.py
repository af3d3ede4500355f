"""Public id helpers.

A public id is the extension-less, slash-delimited path Cloudinary uses to
address an asset, e.g. ``photos/2024/cat``.
"""

import re
from typing import Optional

_EXTENSION = re.compile(r"\.[^/.]+$", re.IGNORECASE)
_EDGE_SLASHES = re.compile(r"^/+|/+$")


def trim_slashes(path: str) -> str:
    return _EDGE_SLASHES.sub("", path or "")


def normalize_public_id(public_id: str) -> str:
    """Strip one file extension from the last path segment only.

    Dots elsewhere in the name are kept, so "my.cat.jpg" becomes "my.cat".
    """
    if not public_id:
        return public_id
    folder, sep, last = public_id.rpartition("/")
    return f"{folder}{sep}{_EXTENSION.sub('', last)}"


def base_name_from_public_id(public_id: str) -> str:
    clean = _EXTENSION.sub("", public_id)
    return clean.split("/")[-1] or clean


def build_move_target(folder: str, public_id: str) -> str:
    """Public id that ``public_id`` gets once moved into ``folder``"""
    base_name = base_name_from_public_id(trim_slashes(public_id))
    folder = trim_slashes(folder)
    return f"{folder}/{base_name}" if folder else base_name


def folder_from_public_id(public_id: Optional[str]) -> Optional[str]:
    if not public_id:
        return None
    folder, sep, _ = public_id.rpartition("/")
    return folder or None


def normalize_tags_csv(text: str) -> str:
    """Turn "tag1, tag2 tag3" into "tag1,tag2,tag3" """
    return ",".join(t for t in re.split(r"[,\s]+", text or "") if t)
