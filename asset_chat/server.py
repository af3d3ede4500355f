import logging
from functools import lru_cache
from typing import List, Optional

import uvicorn
from fastapi import Depends, FastAPI, File, Form, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware

from asset_chat import __version__
from asset_chat.assistant import AssetAssistant
from asset_chat.config import configure_logging, get_settings
from asset_chat.models import Attachment, ChatRequest, ChatResponse
from asset_chat.operations import AssetOperations

logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Asset Chat",
    description="Chat commands for a Cloudinary asset-management MCP server",
    version=__version__,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@lru_cache
def get_assistant() -> AssetAssistant:
    return AssetAssistant(get_settings())


async def _respond(assistant: AssetAssistant, text: str, file: Optional[Attachment],
                   last_asset_id: Optional[str]) -> ChatResponse:
    intent, reply = await assistant.handle(text, file, last_asset_id)
    return ChatResponse(intent=intent.name, **reply.model_dump())


@app.get("/")
async def root():
    """Service information"""
    return {
        "name": "Asset Chat",
        "version": __version__,
        "description": "Natural-language commands for Cloudinary assets over MCP",
        "commands": [
            "list images",
            "list images in <folder>",
            "list folders [in <folder>]",
            "rename <public_id> to <new_id>",
            "move <public_id> to <folder>",
            "delete <public_id>",
            "tag <public_id> with <tags>",
            "create folder <path>",
            "rename/move/delete/tag the above image ...",
        ],
    }


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/tools", response_model=List[str])
async def list_tools(assistant: AssetAssistant = Depends(get_assistant)):
    """Tool names exposed by the configured MCP server"""
    try:
        async with assistant.connection_factory() as client:
            return await AssetOperations(client, assistant.aliases,
                                         assistant.settings.call_timeout_seconds).tool_names()
    except Exception:
        logger.exception("Could not list MCP tools")
        raise HTTPException(status_code=502, detail="MCP server unavailable")


@app.post("/chat", response_model=ChatResponse)
async def chat(request: ChatRequest, assistant: AssetAssistant = Depends(get_assistant)):
    """Handle one chat message; the caller keeps last_asset_id between calls"""
    return await _respond(assistant, request.text, None, request.last_asset_id)


@app.post("/chat/upload", response_model=ChatResponse)
async def chat_upload(
    file: UploadFile = File(...),
    text: str = Form(""),
    last_asset_id: Optional[str] = Form(None),
    assistant: AssetAssistant = Depends(get_assistant),
):
    """Upload an attached file, optionally naming the target folder in ``text``"""
    attachment = Attachment(
        filename=file.filename or "upload",
        content=await file.read(),
        content_type=file.content_type or "application/octet-stream",
    )
    return await _respond(assistant, text, attachment, last_asset_id)


def run():
    settings = get_settings()
    configure_logging(settings.log_level)
    uvicorn.run(
        "asset_chat.server:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
