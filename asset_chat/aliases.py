"""Tool names the asset-management server may use for each capability.

The server has renamed its tools across releases, so each capability maps
to an ordered list of names; the first one the server actually exposes is
used. A JSON file can override any capability without touching the code::

    {"delete_by_public_id": ["assets-delete"], "list_folders": {"names": ["folders"], "fuzzy": "folder"}}
"""

import json
import logging
import re
from pathlib import Path
from typing import Dict, List, Optional, Pattern, Union

from pydantic import BaseModel, Field, ValidationError

from asset_chat.errors import ConfigurationError

logger = logging.getLogger(__name__)

UPLOAD = "upload"
LIST_IMAGES = "list_images"
RENAME = "rename"
DELETE_BY_PUBLIC_ID = "delete_by_public_id"
DELETE_BY_ASSET_ID = "delete_by_asset_id"
UPDATE_BY_PUBLIC_ID = "update_by_public_id"
UPDATE_BY_ASSET_ID = "update_by_asset_id"
GET_BY_PUBLIC_ID = "get_by_public_id"
CREATE_FOLDER = "create_folder"
LIST_FOLDERS = "list_folders"


class ToolAlias(BaseModel):
    names: List[str]
    fuzzy: Optional[str] = None

    def fuzzy_pattern(self) -> Optional[Pattern]:
        return re.compile(self.fuzzy, re.IGNORECASE) if self.fuzzy else None


DEFAULT_ALIASES: Dict[str, ToolAlias] = {
    UPLOAD: ToolAlias(names=["upload-asset"]),
    LIST_IMAGES: ToolAlias(names=["list-images"]),
    RENAME: ToolAlias(names=["asset-rename"]),
    DELETE_BY_PUBLIC_ID: ToolAlias(names=[
        "assets-delete-resources-by-public-id",
        "delete-resources-by-public-id",
        "assets-delete",
    ]),
    DELETE_BY_ASSET_ID: ToolAlias(names=["delete-asset"]),
    UPDATE_BY_PUBLIC_ID: ToolAlias(names=[
        "update-resource-by-public-id",
        "assets-update-resource-by-public-id",
    ]),
    UPDATE_BY_ASSET_ID: ToolAlias(names=["asset-update"]),
    GET_BY_PUBLIC_ID: ToolAlias(names=[
        "get-resource-by-public-id",
        "assets-get-resource-by-public-id",
    ]),
    CREATE_FOLDER: ToolAlias(names=["create-folder", "folders-create-folder"]),
    LIST_FOLDERS: ToolAlias(
        names=["list-folders", "folders-list", "assets-list-folders", "list-subfolders"],
        fuzzy=r"folders?.-?list|list-?folders?|sub.?folders",
    ),
}


class ToolAliases(BaseModel):
    capabilities: Dict[str, ToolAlias] = Field(default_factory=lambda: dict(DEFAULT_ALIASES))

    def get(self, capability: str) -> ToolAlias:
        try:
            return self.capabilities[capability]
        except KeyError:
            raise ConfigurationError(f"Unknown tool capability: {capability}")

    def primary(self, capability: str) -> str:
        """Name used when the server's tool list is not consulted"""
        return self.get(capability).names[0]


def load_aliases(path: Optional[Union[str, Path]] = None) -> ToolAliases:
    """Default alias table, with the capabilities found in ``path`` replaced"""
    aliases = ToolAliases()
    if not path:
        return aliases

    path = Path(path)
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise ConfigurationError(f"Cannot read tool aliases from {path}: {e}") from e
    if not isinstance(raw, dict):
        raise ConfigurationError(f"Tool aliases in {path} must be a JSON object")

    for capability, value in raw.items():
        if isinstance(value, list):
            value = {"names": value}
        try:
            alias = ToolAlias.model_validate(value)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid aliases for {capability!r} in {path}: {e}") from e
        if not alias.names:
            raise ConfigurationError(f"Aliases for {capability!r} in {path} are empty")
        try:
            alias.fuzzy_pattern()
        except re.error as e:
            raise ConfigurationError(f"Bad fuzzy pattern for {capability!r} in {path}: {e}") from e
        aliases.capabilities[capability] = alias

    logger.info("Loaded tool aliases for %d capabilities from %s", len(raw), path)
    return aliases
