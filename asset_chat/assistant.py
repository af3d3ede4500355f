import logging
from typing import Any, AsyncContextManager, Callable, Dict, Optional, Tuple

from asset_chat import intents as it
from asset_chat.aliases import ToolAliases, load_aliases
from asset_chat.config import Settings, get_settings
from asset_chat.guide import generate_friendly_reply
from asset_chat.identifiers import build_move_target, normalize_public_id, normalize_tags_csv
from asset_chat.intents import Intent, match_intent
from asset_chat.mcp_client import connect
from asset_chat.models import Attachment, ChatReply
from asset_chat.operations import AssetOperations

logger = logging.getLogger(__name__)

HELP_TEXT = "Local MCP ready. How can I help you with your Cloudinary assets?"
HELP_HINT = 'Tip, try "list images" to see your recent uploads.'
ERROR_TEXT = "Sorry, an error occurred. Please check the server logs."

ConnectionFactory = Callable[[], AsyncContextManager[Any]]


class AssetAssistant:
    """Turns chat messages into asset operations on the MCP server.

    The assistant keeps no conversation state. The caller passes the id of
    the last asset it showed with each message and gets the new one back in
    ``ChatReply.last_asset_id``.
    """

    def __init__(self, settings: Optional[Settings] = None,
                 connection_factory: Optional[ConnectionFactory] = None,
                 aliases: Optional[ToolAliases] = None):
        self.settings = settings or get_settings()
        self.connection_factory = connection_factory or (lambda: connect(self.settings))
        self.aliases = aliases or load_aliases(self.settings.tool_aliases_file)
        self.handlers: Dict[type, Callable] = {
            it.Upload: self._handle_upload,
            it.ListImages: self._handle_list_images,
            it.ListImagesInFolder: self._handle_list_images_in_folder,
            it.ListFolders: self._handle_list_folders,
            it.RenameAsset: self._handle_rename,
            it.RenameLastAsset: self._handle_rename_last,
            it.DeleteAsset: self._handle_delete,
            it.DeleteLastAsset: self._handle_delete_last,
            it.TagAsset: self._handle_tag,
            it.TagLastAsset: self._handle_tag_last,
            it.CreateFolder: self._handle_create_folder,
            it.MoveAsset: self._handle_move,
            it.MoveLastAsset: self._handle_move_last,
            it.Help: self._handle_help,
        }

    async def process_message(self, text: str, file: Optional[Attachment] = None,
                              last_asset_id: Optional[str] = None) -> ChatReply:
        _, reply = await self.handle(text, file, last_asset_id)
        return reply

    async def handle(self, text: str, file: Optional[Attachment] = None,
                     last_asset_id: Optional[str] = None) -> Tuple[Intent, ChatReply]:
        intent = match_intent(text, file, last_asset_id)
        logger.info("Handling %s for %r", intent.name, text)

        try:
            async with self.connection_factory() as client:
                ops = AssetOperations(client, self.aliases, self.settings.call_timeout_seconds)
                reply = await self.handlers[type(intent)](intent, ops)
        except Exception:
            logger.exception("Failed to handle %s", intent.name)
            reply = ChatReply(text=ERROR_TEXT)
        else:
            reply.text = await generate_friendly_reply(
                self.settings,
                user_text=text,
                default_text=reply.text,
                intent=intent.name,
                assets_count=len(reply.assets) if reply.assets is not None else None,
            )

        reply.last_asset_id = reply.assets[0].id if reply.assets else (last_asset_id or None)
        return intent, reply

    # Handlers

    async def _handle_upload(self, intent: it.Upload, ops: AssetOperations) -> ChatReply:
        folder = intent.target_folder or self.settings.default_upload_folder
        uploaded = await ops.upload(intent.file, folder)
        if uploaded:
            return ChatReply(text="Image uploaded successfully.", assets=[uploaded])
        return ChatReply(text="Upload complete.")

    async def _handle_list_images(self, intent: it.ListImages, ops: AssetOperations) -> ChatReply:
        assets = await ops.list_images(limit=self.settings.list_limit)
        if assets:
            return ChatReply(text="Here are your latest images:", assets=assets)
        return ChatReply(text="No images found.")

    async def _handle_list_images_in_folder(self, intent: it.ListImagesInFolder, ops: AssetOperations) -> ChatReply:
        assets = await ops.list_images_in_folder(intent.folder, limit=self.settings.list_limit)
        if assets:
            return ChatReply(text=f"Here are the images in {intent.folder}:", assets=assets)
        return ChatReply(text=f"No images found in {intent.folder}.")

    async def _handle_list_folders(self, intent: it.ListFolders, ops: AssetOperations) -> ChatReply:
        folders = await ops.list_folders(intent.base, limit=self.settings.list_limit)
        if not folders:
            return ChatReply(text="No folders found.")
        if intent.base:
            return ChatReply(text=f"Here are the folders in {intent.base}:", folders=folders)
        return ChatReply(text="Here are your folders:", folders=folders)

    async def _rename(self, from_id: str, to_id: str, ops: AssetOperations, failure: str) -> ChatReply:
        from_id, to_id = normalize_public_id(from_id), normalize_public_id(to_id)
        renamed = await ops.rename(from_id, to_id)
        if renamed:
            return ChatReply(text=f'Successfully renamed asset to "{to_id}".', assets=[renamed])
        return ChatReply(text=failure.format(from_id=from_id))

    async def _handle_rename(self, intent: it.RenameAsset, ops: AssetOperations) -> ChatReply:
        return await self._rename(intent.from_id, intent.to_id, ops,
                                  'Could not rename asset. Please ensure the public ID "{from_id}" exists.')

    async def _handle_rename_last(self, intent: it.RenameLastAsset, ops: AssetOperations) -> ChatReply:
        return await self._rename(intent.asset_id, intent.to_id, ops,
                                  'Could not rename asset. The ID "{from_id}" may no longer be valid.')

    async def _delete(self, public_id: str, ops: AssetOperations, failure: str, missing: str = "") -> ChatReply:
        public_id = normalize_public_id(public_id)
        outcome = await ops.delete(public_id)
        if outcome.asset_id_missing:
            return ChatReply(text=f'Could not find asset_id for "{public_id}".{missing}')
        if outcome.ok:
            return ChatReply(text=f"Deleted {public_id}.")
        return ChatReply(text=f'Failed to delete "{public_id}". {failure}')

    async def _handle_delete(self, intent: it.DeleteAsset, ops: AssetOperations) -> ChatReply:
        return await self._delete(intent.id, ops, "Please check the ID.", " Check the ID.")

    async def _handle_delete_last(self, intent: it.DeleteLastAsset, ops: AssetOperations) -> ChatReply:
        return await self._delete(intent.asset_id, ops, "It may not exist.")

    async def _tag(self, public_id: str, tags: str, ops: AssetOperations) -> ChatReply:
        public_id = normalize_public_id(public_id)
        tags_csv = normalize_tags_csv(tags)
        outcome = await ops.tag(public_id, tags_csv)
        if not outcome.ok:
            return ChatReply(text=f'Failed to tag "{public_id}".')
        return ChatReply(
            text=f"Tagged {public_id} with: {tags_csv}",
            assets=[outcome.asset] if outcome.asset else None,
        )

    async def _handle_tag(self, intent: it.TagAsset, ops: AssetOperations) -> ChatReply:
        return await self._tag(intent.id, intent.tags_csv, ops)

    async def _handle_tag_last(self, intent: it.TagLastAsset, ops: AssetOperations) -> ChatReply:
        return await self._tag(intent.asset_id, intent.tags_csv, ops)

    async def _handle_create_folder(self, intent: it.CreateFolder, ops: AssetOperations) -> ChatReply:
        if await ops.create_folder(intent.path):
            return ChatReply(text=f'Created folder "{intent.path}".')
        return ChatReply(text=f'Could not create folder "{intent.path}".')

    async def _move(self, public_id: str, folder: str, ops: AssetOperations) -> ChatReply:
        public_id = normalize_public_id(public_id)
        target = build_move_target(folder, public_id)
        moved = await ops.move(public_id, folder)
        if moved:
            return ChatReply(text=f"Moved {public_id} to {target}.", assets=[moved])
        return ChatReply(text=f'Could not move "{public_id}" to "{folder}".')

    async def _handle_move(self, intent: it.MoveAsset, ops: AssetOperations) -> ChatReply:
        return await self._move(intent.id, intent.folder, ops)

    async def _handle_move_last(self, intent: it.MoveLastAsset, ops: AssetOperations) -> ChatReply:
        return await self._move(intent.asset_id, intent.folder, ops)

    async def _handle_help(self, intent: it.Help, ops: AssetOperations) -> ChatReply:
        return ChatReply(text=HELP_TEXT, tools=await ops.tool_names(), hint=HELP_HINT)
