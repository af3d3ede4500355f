"""Chat assistant for a Cloudinary asset-management MCP server."""

from asset_chat.assistant import AssetAssistant
from asset_chat.intents import match_intent
from asset_chat.models import AssetItem, Attachment, ChatReply

__version__ = "1.0.0"

__all__ = [
    "AssetAssistant",
    "AssetItem",
    "Attachment",
    "ChatReply",
    "match_intent",
]
