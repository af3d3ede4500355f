"""Asset operations on top of a generic MCP tool client.

One ``AssetOperations`` lives for one chat request. It asks the server for
its tool names once, picks the concrete tool for each capability from the
alias table, and falls back to slower strategies when a capability is
missing (delete through the internal asset id, folders derived from image
paths).
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from asset_chat import aliases as cap
from asset_chat.aliases import ToolAliases
from asset_chat.errors import ToolCallError
from asset_chat.identifiers import build_move_target, trim_slashes
from asset_chat.models import AssetItem, Attachment, CallToolResult
from asset_chat.parsers import (
    extract_asset_id,
    extract_asset_id_from_list,
    extract_assets,
    extract_folders,
    parse_create_folder_success,
    parse_delete_success,
    parse_single_asset_result,
    parse_update_success,
    read_error,
    unique_top_folders,
)

logger = logging.getLogger(__name__)

RESOURCE_TYPE = "image"
DELIVERY_TYPE = "upload"


@dataclass
class DeleteOutcome:
    ok: bool
    asset_id_missing: bool = False


@dataclass
class TagOutcome:
    ok: bool
    asset: Optional[AssetItem] = None


def argument_shapes(core_args: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Envelopes a tool may expect its arguments in, most likely first"""
    return [
        dict(core_args),
        {"request": core_args},
        {"requestBody": core_args},
    ]


class AssetOperations:
    def __init__(self, client, aliases: Optional[ToolAliases] = None, call_timeout: Optional[float] = 30.0):
        self.client = client
        self.aliases = aliases or ToolAliases()
        self.call_timeout = call_timeout
        self._tool_names: Optional[List[str]] = None

    # Tool selection

    async def tool_names(self) -> List[str]:
        """Names exposed by the server, fetched once per request"""
        if self._tool_names is None:
            result = await self._bounded(self.client.list_tools())
            self._tool_names = [tool.name for tool in result.tools]
            logger.debug("Server tools: %s", self._tool_names)
        return self._tool_names

    async def pick_tool(self, capability: str) -> Optional[str]:
        alias = self.aliases.get(capability)
        names = await self.tool_names()

        for candidate in alias.names:
            if candidate in names:
                return candidate

        pattern = alias.fuzzy_pattern()
        if pattern is not None:
            for name in names:
                if pattern.search(name):
                    logger.info("Using fuzzy match %s for %s", name, capability)
                    return name

        logger.info("No tool available for %s", capability)
        return None

    # Calls

    async def _bounded(self, awaitable):
        if self.call_timeout is None:
            return await awaitable
        return await asyncio.wait_for(awaitable, timeout=self.call_timeout)

    async def call(self, name: str, arguments: Dict[str, Any]) -> CallToolResult:
        logger.debug("Calling %s with %s", name, arguments)
        result = await self._bounded(self.client.call_tool(name, arguments))
        logger.debug("%s returned %s", name, result.content)
        return result

    def _rejected(self, name: str, result: Optional[CallToolResult]) -> bool:
        """True when the server flagged the call as failed"""
        if result is not None and result.is_error:
            logger.warning("%s failed: %s", name, read_error(result.content) or "no details")
            return True
        return False

    async def call_with_shapes(self, name: str, core_args: Dict[str, Any]) -> Optional[CallToolResult]:
        """First envelope the tool accepts without raising; None if none does"""
        for arguments in argument_shapes(core_args):
            try:
                return await self.call(name, arguments)
            except Exception as e:
                logger.warning("%s rejected %s: %s", name, list(arguments), e)
        return None

    # Listing

    async def list_images(self, limit: Optional[int] = 5) -> List[AssetItem]:
        name = self.aliases.primary(cap.LIST_IMAGES)
        result = await self.call(name, {})
        if result.is_error:
            raise ToolCallError(name, read_error(result.content) or f"{name} failed")
        return extract_assets(result.content, limit=limit) or []

    async def list_images_in_folder(self, folder: str, limit: Optional[int] = 5) -> List[AssetItem]:
        folder = trim_slashes(folder)
        prefix = f"{folder}/"
        found = []
        for asset in await self.list_images(limit=None):
            asset_folder = trim_slashes(asset.folder or "")
            if asset_folder == folder or asset_folder.startswith(prefix):
                found.append(asset)
            if limit is not None and len(found) >= limit:
                break
        return found

    async def list_folders(self, base: Optional[str] = None, limit: int = 5) -> List[str]:
        tool = await self.pick_tool(cap.LIST_FOLDERS)
        if tool:
            path = trim_slashes((base or "").strip())
            result = await self.call_with_shapes(tool, {"path": path} if path else {})
            usable = result is not None and not self._rejected(tool, result)
            folders = extract_folders(result.content if usable else None, limit=limit)
            if folders:
                return folders

        logger.info("Deriving folders from image paths")
        assets = await self.list_images(limit=None)
        return unique_top_folders(assets, base=base, limit=limit)

    # Writes

    async def upload(self, file: Attachment, folder: str) -> Optional[AssetItem]:
        name = self.aliases.primary(cap.UPLOAD)
        result = await self.call(name, {
            "uploadRequest": {
                "file": file.to_data_uri(),
                "fileName": file.filename,
                "folder": folder,
            }
        })
        if result.is_error:
            raise ToolCallError(name, read_error(result.content) or f"{name} failed")
        return parse_single_asset_result(result.content)

    async def rename(self, from_public_id: str, to_public_id: str) -> Optional[AssetItem]:
        name = self.aliases.primary(cap.RENAME)
        result = await self.call(name, {
            "resourceType": RESOURCE_TYPE,
            "requestBody": {
                "from_public_id": from_public_id,
                "to_public_id": to_public_id,
            },
        })
        if self._rejected(name, result):
            return None
        return parse_single_asset_result(result.content)

    async def move(self, public_id: str, folder: str) -> Optional[AssetItem]:
        return await self.rename(public_id, build_move_target(folder, public_id))

    async def delete(self, public_id: str) -> DeleteOutcome:
        bulk_tool = await self.pick_tool(cap.DELETE_BY_PUBLIC_ID)
        if bulk_tool:
            result = await self.call(bulk_tool, {
                "resourceType": RESOURCE_TYPE,
                "request": {"public_ids": [public_id], "type": DELIVERY_TYPE},
            })
            if self._rejected(bulk_tool, result):
                return DeleteOutcome(ok=False)
            return DeleteOutcome(ok=parse_delete_success(result.content, public_id))

        asset_id = await self._asset_id_from_list(public_id)
        if not asset_id:
            return DeleteOutcome(ok=False, asset_id_missing=True)

        name = self.aliases.primary(cap.DELETE_BY_ASSET_ID)
        result = await self.call(name, {
            "resourceType": RESOURCE_TYPE,
            "request": {"asset_id": asset_id, "invalidate": True},
        })
        if self._rejected(name, result):
            return DeleteOutcome(ok=False)
        return DeleteOutcome(ok=parse_delete_success(result.content, public_id))

    async def get_asset_id(self, public_id: str) -> Optional[str]:
        """Internal asset id for a public id: lookup tool first, then the image list"""
        lookup = await self.pick_tool(cap.GET_BY_PUBLIC_ID)
        if lookup:
            result = await self.call(lookup, {
                "resourceType": RESOURCE_TYPE,
                "request": {"public_id": public_id, "type": DELIVERY_TYPE},
            })
            asset_id = None if self._rejected(lookup, result) else extract_asset_id(result.content)
            if asset_id:
                return asset_id

        return await self._asset_id_from_list(public_id)

    async def _asset_id_from_list(self, public_id: str) -> Optional[str]:
        name = self.aliases.primary(cap.LIST_IMAGES)
        listing = await self.call(name, {})
        if self._rejected(name, listing):
            return None
        return extract_asset_id_from_list(listing.content, public_id)

    async def tag(self, public_id: str, tags_csv: str) -> TagOutcome:
        update_tool = await self.pick_tool(cap.UPDATE_BY_PUBLIC_ID)
        if update_tool:
            name = update_tool
            result = await self.call(name, {
                "resourceType": RESOURCE_TYPE,
                "request": {"public_id": public_id, "type": DELIVERY_TYPE, "tags": tags_csv},
            })
        else:
            asset_id = await self.get_asset_id(public_id)
            if not asset_id:
                return TagOutcome(ok=False)
            name = self.aliases.primary(cap.UPDATE_BY_ASSET_ID)
            result = await self.call(name, {
                "assetId": asset_id,
                "resourceUpdateRequest": {"tags": tags_csv},
            })

        if self._rejected(name, result):
            return TagOutcome(ok=False)
        return TagOutcome(
            ok=parse_update_success(result.content),
            asset=parse_single_asset_result(result.content),
        )

    async def create_folder(self, path: str) -> bool:
        tool = await self.pick_tool(cap.CREATE_FOLDER)
        if not tool:
            return False
        result = await self.call_with_shapes(tool, {"folder": path})
        if self._rejected(tool, result):
            return False
        return parse_create_folder_success(result.content if result else None)
