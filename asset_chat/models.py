import base64
from dataclasses import dataclass
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

# A content part is {"type": "text", "text": ...}, {"type": "json", "json": ...}
# or any other {"type": ..., ...} the server invents.
ToolContentPart = Dict[str, Any]


class CallToolResult(BaseModel):
    content: List[ToolContentPart] = Field(default_factory=list)
    is_error: bool = False


class ToolInfo(BaseModel):
    name: str
    description: Optional[str] = None


class ListToolsResult(BaseModel):
    tools: List[ToolInfo] = Field(default_factory=list)


class AssetItem(BaseModel):
    """A single Cloudinary asset as shown in the chat"""

    id: str
    url: Optional[str] = None
    thumb_url: Optional[str] = None
    folder: Optional[str] = None
    created_at: Optional[str] = None
    format: Optional[str] = None
    width: Optional[float] = None
    height: Optional[float] = None
    resource_type: Optional[Literal["image", "video", "raw"]] = None
    tags: Optional[List[str]] = None


@dataclass(frozen=True)
class Attachment:
    """A file the user attached to a chat message"""

    filename: str
    content: bytes
    content_type: str = "application/octet-stream"

    def to_data_uri(self) -> str:
        encoded = base64.b64encode(self.content).decode("ascii")
        return f"data:{self.content_type or 'application/octet-stream'};base64,{encoded}"


class ChatReply(BaseModel):
    text: str
    assets: Optional[List[AssetItem]] = None
    folders: Optional[List[str]] = None
    tools: Optional[List[str]] = None
    hint: Optional[str] = None
    last_asset_id: Optional[str] = None


# API schemas

class ChatRequest(BaseModel):
    text: str = ""
    last_asset_id: Optional[str] = None


class ChatResponse(ChatReply):
    intent: str
