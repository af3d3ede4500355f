import logging
from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="ASSET_CHAT_",
        env_file=".env",
        extra="ignore",
    )

    # MCP connection
    mcp_transport: str = "sse"  # "sse" (official SDK) or "http" (simple /tools bridge)
    mcp_server_name: str = "asset-management"
    mcp_sse_url: str = ""  # empty: look up mcp_server_name in the Cloudinary registry
    mcp_http_url: str = "http://localhost:8000"
    call_timeout_seconds: float = 30.0

    # Assistant behaviour
    list_limit: int = 5
    default_upload_folder: str = "chat_uploads"
    tool_aliases_file: Optional[str] = None

    # Optional friendly wording through OpenAI
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    enable_ai_guide: bool = False
    docs_url: str = "https://github.com/cloudinary-labs/cloudinary-mcp"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    cors_origins: List[str] = ["*"]

    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    return Settings()


def configure_logging(level: Optional[str] = None) -> None:
    """Set up root logging once for the CLI and server entry points"""
    logging.basicConfig(
        level=(level or get_settings().log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
