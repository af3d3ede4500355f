"""Optional friendlier wording for assistant replies through OpenAI.

Best effort only: with no key, the guide disabled, or any API failure, the
default text is returned unchanged.
"""

import logging
from typing import List, Optional

from openai import AsyncOpenAI

from asset_chat.config import Settings

logger = logging.getLogger(__name__)


def is_enabled(settings: Settings) -> bool:
    return bool(settings.openai_api_key) and settings.enable_ai_guide


def build_system_prompt(docs_url: str) -> str:
    return " ".join([
        "You are a warm, concise product guide for a Cloudinary MCP chat.",
        "Tone: friendly, encouraging, not robotic. Keep answers short (1-3 sentences).",
        "Never invent features. If the user asks for something not implemented, say it is in progress and offer alternatives.",
        "Mention available actions naturally when helpful (list images, list folders, rename, move, delete, tag, create folder).",
        'When user is lost or says "hi", briefly introduce what the chat can do and offer a nudge.',
        f"If it helps, point to docs with this exact link text: Cloudinary MCP server docs ({docs_url}).",
        "Never show code blocks or JSON. No bullet lists unless the default text already implies a list.",
    ])


def build_user_prompt(user_text: str, default_text: str, intent: Optional[str] = None,
                      assets_count: Optional[int] = None, extra_tips: Optional[List[str]] = None) -> str:
    hints = []
    if assets_count is not None:
        hints.append(f"We just returned {assets_count} asset(s).")
    if intent:
        hints.append(f"Detected intent: {intent}.")
    if extra_tips:
        hints.append("Tips: " + " • ".join(extra_tips))

    lines = [
        f'User said: "{user_text}"',
        f'Assistant\'s default reply (must keep meaning): "{default_text}"',
        f"Context: {' | '.join(hints)}" if hints else "",
        "Rewrite the default reply to be more conversational and helpful, keeping it brief.",
    ]
    return "\n".join(line for line in lines if line)


async def generate_friendly_reply(settings: Settings, user_text: str, default_text: str,
                                  intent: Optional[str] = None, assets_count: Optional[int] = None,
                                  extra_tips: Optional[List[str]] = None,
                                  client: Optional[AsyncOpenAI] = None) -> str:
    if not is_enabled(settings):
        return default_text

    system = build_system_prompt(settings.docs_url)
    user = build_user_prompt(user_text, default_text, intent, assets_count, extra_tips)
    logger.debug("AI guide prompt: %s", user)

    try:
        client = client or AsyncOpenAI(api_key=settings.openai_api_key)
        response = await client.chat.completions.create(
            model=settings.openai_model,
            messages=[
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
            temperature=0.5,
            max_tokens=160,
        )
        text = (response.choices[0].message.content or "").strip() if response.choices else ""
    except Exception as e:
        logger.warning("AI guide failed, keeping default reply: %s", e)
        return default_text

    return text or default_text
