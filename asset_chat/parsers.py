"""Tolerant parsers for MCP tool responses.

The asset-management server does not promise a stable payload shape: data
may come as a ``json`` content part or as JSON embedded in a ``text`` part,
fields come in snake_case and camelCase spellings, and sometimes the text is
just prose. Nothing here raises on a malformed payload; a parser that
cannot make sense of a response returns ``None``/``False``.

The success checks for write operations run three tiers in order and stop at
the first one that answers:

1. the ``json`` part, read as an object
2. the ``text`` part, parsed as JSON
3. a keyword scan of the raw text (only when the text is not JSON at all)
"""

import json
import math
import re
from typing import Any, Callable, Dict, Iterable, List, Optional
from urllib.parse import urlsplit, urlunsplit

from asset_chat.identifiers import folder_from_public_id, normalize_public_id, trim_slashes
from asset_chat.models import AssetItem, ToolContentPart

THUMB_TRANSFORMATION = "c_fill,w_160,h_160,q_auto,f_auto"

# Field aliases, first present wins
PUBLIC_ID_KEYS = ["public_id", "publicId"]
ASSET_ID_KEYS = ["asset_id", "assetId"]
URL_KEYS = ["secure_url", "secureUrl", "url"]
CREATED_AT_KEYS = ["created_at", "createdAt"]
RESOURCE_TYPE_KEYS = ["resource_type", "resourceType"]
ASSET_LIST_KEYS = ["resources", "items"]
FOLDER_LIST_KEYS = ["folders", "sub_folders", "items"]
FOLDER_NAME_KEYS = ["path", "name"]

Tier = Callable[[], Optional[bool]]


# Content helpers

def _parts(content: Optional[Iterable[Any]]) -> List[Dict[str, Any]]:
    if not content or isinstance(content, (str, bytes, dict)):
        return []
    return [p for p in content if isinstance(p, dict)]


def get_json(content: Optional[List[ToolContentPart]]) -> Any:
    """Payload of the first ``json`` part"""
    for part in _parts(content):
        if part.get("type") == "json" and "json" in part:
            return part["json"]
    return None


def get_text(content: Optional[List[ToolContentPart]]) -> Optional[str]:
    """Text of the first ``text`` part"""
    for part in _parts(content):
        if part.get("type") == "text" and isinstance(part.get("text"), str):
            return part["text"]
    return None


def parse_json_text(text: Optional[str]) -> Any:
    """``text`` parsed as JSON, or None"""
    if not text:
        return None
    try:
        return json.loads(text)
    except ValueError:
        return None


def json_from_text(text: Optional[str]) -> Optional[Dict[str, Any]]:
    """JSON object embedded between the first '{' and the last '}'"""
    if not text or "{" not in text:
        return None
    start, end = text.find("{"), text.rfind("}")
    if end <= start:
        return None
    data = parse_json_text(text[start:end + 1])
    return data if isinstance(data, dict) else None


def read_error(content: Optional[List[ToolContentPart]]) -> Optional[str]:
    text = get_text(content)
    if text:
        return text
    data = get_json(content)
    if isinstance(data, dict):
        for key in ("message", "error", "err"):
            if isinstance(data.get(key), str):
                return data[key]
    return None


# Field getters

def get_string(obj: Dict[str, Any], keys: List[str]) -> Optional[str]:
    for key in keys:
        value = obj.get(key)
        if isinstance(value, str) and value:
            return value
    return None


def get_number(obj: Dict[str, Any], keys: List[str]) -> Optional[float]:
    for key in keys:
        value = obj.get(key)
        # bool is an int subclass
        if isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value):
            return value
    return None


def get_array(obj: Dict[str, Any], keys: List[str]) -> Optional[list]:
    for key in keys:
        value = obj.get(key)
        if isinstance(value, list):
            return value
    return None


def get_string_list(obj: Dict[str, Any], keys: List[str]) -> Optional[List[str]]:
    """A list of strings from an array or a comma/space separated string"""
    values = get_array(obj, keys)
    if values is not None:
        out = [v.strip() for v in values if isinstance(v, str) and v.strip()]
        return out or None
    text = get_string(obj, keys)
    if text:
        out = [t for t in re.split(r"[,\s]+", text) if t]
        return out or None
    return None


def clean_url(value: Optional[str]) -> Optional[str]:
    """First token of ``value`` as an https URL, or None if it is not a URL"""
    if not value or not isinstance(value, str):
        return None
    token = re.split(r"[\s\"']", value.strip(), maxsplit=1)[0]
    try:
        parts = urlsplit(token)
    except ValueError:
        return None
    if parts.scheme not in ("http", "https") or not parts.netloc:
        return None
    return urlunsplit(("https",) + tuple(parts)[1:])


def thumbnail_url(url: Optional[str]) -> Optional[str]:
    if url and "/image/upload/" in url:
        return url.replace("/image/upload/", f"/image/upload/{THUMB_TRANSFORMATION}/", 1)
    return url


def infer_resource_type(obj: Dict[str, Any], url: Optional[str]) -> Optional[str]:
    explicit = get_string(obj, RESOURCE_TYPE_KEYS)
    if explicit in ("image", "video", "raw"):
        return explicit
    if url and "/video/upload/" in url:
        return "video"
    if url and "/image/upload/" in url:
        return "image"
    return None


# Assets

def _load_object(content: Optional[List[ToolContentPart]]) -> Optional[Dict[str, Any]]:
    data = get_json(content)
    if data is None:
        data = json_from_text(get_text(content))
    return data if isinstance(data, dict) else None


def asset_from_resource(resource: Dict[str, Any]) -> Optional[AssetItem]:
    """One list entry to an AssetItem; None when it carries no identifier"""
    public_id = get_string(resource, PUBLIC_ID_KEYS)
    asset_id = get_string(resource, ASSET_ID_KEYS)
    if not public_id and not asset_id:
        return None

    url = clean_url(get_string(resource, URL_KEYS))
    folder = get_string(resource, ["folder"]) or folder_from_public_id(public_id)

    return AssetItem(
        id=public_id or asset_id,
        url=url,
        thumb_url=thumbnail_url(url),
        folder=folder or None,
        created_at=get_string(resource, CREATED_AT_KEYS),
        format=get_string(resource, ["format"]),
        width=get_number(resource, ["width"]),
        height=get_number(resource, ["height"]),
        resource_type=infer_resource_type(resource, url),
        tags=get_string_list(resource, ["tags"]),
    )


def extract_assets(
    content: Optional[List[ToolContentPart]],
    limit: Optional[int] = 5,
) -> Optional[List[AssetItem]]:
    """Assets from a list response, or None when there are none"""
    data = _load_object(content)
    if data is None:
        return None

    resources = get_array(data, ASSET_LIST_KEYS) or []
    assets = []
    for resource in resources:
        if limit is not None and len(assets) >= limit:
            break
        if not isinstance(resource, dict):
            continue
        asset = asset_from_resource(resource)
        if asset is not None:
            assets.append(asset)

    return assets or None


def parse_single_asset_result(content: Optional[List[ToolContentPart]]) -> Optional[AssetItem]:
    """Asset confirmed by an upload/rename/move/update response.

    A response without a usable URL is treated as unparseable, even when it
    names a public id.
    """
    data = get_json(content)
    if data is None:
        data = parse_json_text(get_text(content))
    if not isinstance(data, dict):
        return None

    url = clean_url(get_string(data, URL_KEYS))
    if not url:
        return None

    public_id = get_string(data, PUBLIC_ID_KEYS)
    folder = get_string(data, ["folder"]) or folder_from_public_id(public_id)
    if public_id and "/" not in public_id and folder:
        public_id = f"{trim_slashes(folder)}/{public_id}"

    asset_id = get_string(data, ASSET_ID_KEYS)
    return AssetItem(
        id=public_id or asset_id or url,
        url=url,
        thumb_url=url,
        folder=folder or None,
        created_at=get_string(data, CREATED_AT_KEYS),
        format=get_string(data, ["format"]),
        width=get_number(data, ["width"]),
        height=get_number(data, ["height"]),
        resource_type=infer_resource_type(data, url),
        tags=get_string_list(data, ["tags"]),
    )


def extract_asset_id_from_list(
    content: Optional[List[ToolContentPart]],
    public_id: str,
) -> Optional[str]:
    """Internal asset id of ``public_id`` found in a list response"""
    wanted = normalize_public_id(public_id)
    for data in (get_json(content), parse_json_text(get_text(content))):
        if not isinstance(data, dict):
            continue
        for resource in get_array(data, ASSET_LIST_KEYS) or []:
            if not isinstance(resource, dict):
                continue
            if get_string(resource, PUBLIC_ID_KEYS) in (public_id, wanted):
                asset_id = get_string(resource, ASSET_ID_KEYS)
                if asset_id:
                    return asset_id
    return None


def extract_asset_id(content: Optional[List[ToolContentPart]]) -> Optional[str]:
    """``asset_id`` of a single resource lookup"""
    for data in (get_json(content), parse_json_text(get_text(content))):
        if isinstance(data, dict):
            asset_id = get_string(data, ASSET_ID_KEYS)
            if asset_id:
                return asset_id
    return None


# Folders

def extract_folders(content: Optional[List[ToolContentPart]], limit: int = 5) -> List[str]:
    def pick(data: Any) -> List[str]:
        if not isinstance(data, dict):
            return []
        entries = next((data[k] for k in FOLDER_LIST_KEYS if isinstance(data.get(k), list)), [])
        names = []
        for entry in entries:
            if isinstance(entry, str) and entry:
                name = entry
            elif isinstance(entry, dict):
                name = get_string(entry, FOLDER_NAME_KEYS)
            else:
                name = None
            if name:
                names.append(name)
            if len(names) >= limit:
                break
        return names

    data = get_json(content)
    if data is not None:
        return pick(data)
    return pick(parse_json_text(get_text(content)))


def unique_top_folders(
    assets: List[AssetItem],
    base: Optional[str] = None,
    limit: int = 5,
) -> List[str]:
    """Folders derived from asset paths: top level, or the children of ``base``"""
    base = trim_slashes(base or "")
    prefix = f"{base}/" if base else ""
    found: List[str] = []

    for asset in assets:
        path = asset.folder or folder_from_public_id(normalize_public_id(asset.id)) or ""
        path = trim_slashes(path)
        if not path:
            continue
        if base:
            if not path.startswith(prefix):
                continue
            top = path[len(prefix):].split("/")[0]
            folder = f"{base}/{top}" if top else None
        else:
            folder = path.split("/")[0]
        if folder and folder not in found:
            found.append(folder)
        if len(found) >= limit:
            break

    return found


# Write-operation success checks

def first_success(*tiers: Tier) -> bool:
    for tier in tiers:
        if tier():
            return True
    return False


def _text_tiers(
    content: Optional[List[ToolContentPart]],
    check: Callable[[Dict[str, Any]], Optional[bool]],
    patterns: List[str],
) -> List[Tier]:
    text = get_text(content)

    def from_json_part() -> Optional[bool]:
        data = get_json(content)
        return check(data) if isinstance(data, dict) else None

    def from_json_text() -> Optional[bool]:
        data = parse_json_text(text)
        return check(data) if isinstance(data, dict) else None

    def from_keywords() -> Optional[bool]:
        # Only prose is scanned; a JSON answer was already judged above.
        if not text or parse_json_text(text) is not None:
            return None
        return any(re.search(p, text, re.IGNORECASE) for p in patterns) or None

    return [from_json_part, from_json_text, from_keywords]


def parse_delete_success(content: Optional[List[ToolContentPart]], public_id: Optional[str] = None) -> bool:
    def check(data: Dict[str, Any]) -> Optional[bool]:
        if data.get("result") == "ok":
            return True
        deleted = data.get("deleted")
        if public_id and isinstance(deleted, dict) and deleted.get(public_id) == "deleted":
            return True
        return None

    return first_success(*_text_tiers(content, check, [r"\bdeleted\b", r"\bresult\b.*\bok\b"]))


def parse_update_success(content: Optional[List[ToolContentPart]]) -> bool:
    def check(data: Dict[str, Any]) -> Optional[bool]:
        if data.get("result") == "ok":
            return True
        if isinstance(data.get("tags"), (list, str)):
            return True
        if isinstance(data.get("public_id"), str):
            return True
        return None

    return first_success(*_text_tiers(content, check, [r"\bresult\b.*\bok\b", r"\btags\b", r"\bpublic_id\b"]))


def parse_create_folder_success(content: Optional[List[ToolContentPart]]) -> bool:
    def check(data: Dict[str, Any]) -> Optional[bool]:
        if data.get("result") == "ok" or data.get("success") is True:
            return True
        if isinstance(data.get("path"), str) or isinstance(data.get("name"), str):
            return True
        return None

    return first_success(*_text_tiers(
        content,
        check,
        [r"\bresult\b.*\bok\b", r"\bsuccess\b\s*:\s*true", r"\bpath\b", r"\bname\b"],
    ))
