#!/usr/bin/env python3

import asyncio
import mimetypes
import re
from pathlib import Path
from typing import Optional, Tuple

from asset_chat.assistant import AssetAssistant
from asset_chat.config import configure_logging, get_settings
from asset_chat.models import Attachment, ChatReply

HELP = """🤖 **Available Commands:**

🖼️ **Images:**
• "list images"
• "list images in summer/2024"
• "upload ./cat.jpg" / "upload ./cat.jpg to pets"

📁 **Folders:**
• "list folders" / "list folders in summer"
• "create folder summer/2024"

✏️ **Changes:**
• "rename pets/cat to pets/kitty"
• "move pets/cat to archive"
• "tag pets/cat with cute, animals"
• "delete pets/cat"

👆 **The last image shown:**
• "rename the above image to kitty"
• "move the above image to archive"
• "tag the above image with cute"
• "delete the above image"
"""

_UPLOAD = re.compile(r"upload\s+(?P<path>\S+)(?:\s+(?P<rest>(?:to|into)\s+.+))?", re.IGNORECASE)


def read_attachment(message: str) -> Tuple[Optional[Attachment], str]:
    """Split "upload <path> [to <folder>]" into the file and the remaining text"""
    m = _UPLOAD.fullmatch(message.strip())
    if not m:
        return None, message
    path = Path(m.group("path")).expanduser()
    if not path.is_file():
        return None, message
    content_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
    attachment = Attachment(filename=path.name, content=path.read_bytes(), content_type=content_type)
    return attachment, m.group("rest") or ""


def render(reply: ChatReply) -> str:
    lines = [reply.text]
    for asset in reply.assets or []:
        details = ", ".join(v for v in (asset.format, asset.url) if v)
        lines.append(f"  🖼️  {asset.id}" + (f" ({details})" if details else ""))
    for folder in reply.folders or []:
        lines.append(f"  📁 {folder}")
    if reply.tools:
        lines.append(f"  🔧 Tools: {', '.join(reply.tools)}")
    if reply.hint:
        lines.append(f"  💡 {reply.hint}")
    return "\n".join(lines)


async def main():
    settings = get_settings()
    configure_logging(settings.log_level)
    assistant = AssetAssistant(settings)
    last_asset_id: Optional[str] = None

    print("=== Asset Chat ===")
    print("Type 'help' for commands, 'quit' to leave.\n")

    while True:
        try:
            user_input = input("You: ").strip()

            if not user_input:
                continue

            if user_input.lower() in ['quit', 'exit', 'bye', 'q']:
                print("👋 Goodbye!")
                break

            if user_input.lower() in ['help', 'h', '?']:
                print(HELP)
                continue

            attachment, text = read_attachment(user_input)
            reply = await assistant.process_message(text, attachment, last_asset_id)
            last_asset_id = reply.last_asset_id
            print(f"Bot: {render(reply)}\n")

        except (KeyboardInterrupt, EOFError):
            print("\n👋 Goodbye!")
            break
        except Exception as e:
            print(f"❌ Unexpected error: {e}\n")


def run():
    asyncio.run(main())


if __name__ == "__main__":
    run()
