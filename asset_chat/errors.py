class AssetChatError(Exception):
    """Base error for the asset chat assistant"""


class ToolCallError(AssetChatError):
    """The MCP server answered a tool call with isError set"""

    def __init__(self, tool_name: str, message: str):
        self.tool_name = tool_name
        super().__init__(f"{tool_name}: {message}")


class MCPConnectionError(AssetChatError):
    """Could not open a session with the MCP server"""


class ConfigurationError(AssetChatError):
    """Invalid configuration value or file"""
