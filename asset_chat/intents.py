"""Map a chat message to exactly one asset intent.

Rules are tried top to bottom and the first one that produces an intent
wins. A rule may decline a syntactic match (for example "delete the above
image" when no asset was shown yet) and matching then continues with the
next rule. ``Help`` is the catch-all.
"""

import re
from dataclasses import dataclass
from typing import Callable, List, Optional, Pattern, Tuple

from asset_chat.identifiers import trim_slashes
from asset_chat.models import Attachment

ABOVE_IMAGE = "the above image"


@dataclass(frozen=True)
class Intent:
    @property
    def name(self) -> str:
        return type(self).__name__


@dataclass(frozen=True)
class Upload(Intent):
    file: Attachment
    target_folder: Optional[str] = None


@dataclass(frozen=True)
class ListImages(Intent):
    pass


@dataclass(frozen=True)
class ListImagesInFolder(Intent):
    folder: str


@dataclass(frozen=True)
class ListFolders(Intent):
    base: Optional[str] = None


@dataclass(frozen=True)
class RenameAsset(Intent):
    from_id: str
    to_id: str


@dataclass(frozen=True)
class RenameLastAsset(Intent):
    asset_id: str
    to_id: str


@dataclass(frozen=True)
class DeleteAsset(Intent):
    id: str


@dataclass(frozen=True)
class DeleteLastAsset(Intent):
    asset_id: str


@dataclass(frozen=True)
class TagAsset(Intent):
    id: str
    tags_csv: str


@dataclass(frozen=True)
class TagLastAsset(Intent):
    asset_id: str
    tags_csv: str


@dataclass(frozen=True)
class CreateFolder(Intent):
    path: str


@dataclass(frozen=True)
class MoveAsset(Intent):
    id: str
    folder: str


@dataclass(frozen=True)
class MoveLastAsset(Intent):
    asset_id: str
    folder: str


@dataclass(frozen=True)
class Help(Intent):
    pass


@dataclass(frozen=True)
class MatchContext:
    text: str
    last_asset_id: Optional[str] = None


Builder = Callable[[re.Match, MatchContext], Optional[Intent]]


def _is_above_image(value: str) -> bool:
    return value.strip().lower() == ABOVE_IMAGE


def _list_in_folder(m: re.Match, ctx: MatchContext) -> Optional[Intent]:
    folder = trim_slashes(m.group("folder").strip())
    return ListImagesInFolder(folder) if folder else None


def _list_folders(m: re.Match, ctx: MatchContext) -> Optional[Intent]:
    base = trim_slashes((m.group("base") or "").strip())
    return ListFolders(base or None)


def _rename_last(m: re.Match, ctx: MatchContext) -> Optional[Intent]:
    if not ctx.last_asset_id:
        return None
    return RenameLastAsset(ctx.last_asset_id, m.group("to").strip())


def _delete_last(m: re.Match, ctx: MatchContext) -> Optional[Intent]:
    if not ctx.last_asset_id:
        return None
    return DeleteLastAsset(ctx.last_asset_id)


def _tag_last(m: re.Match, ctx: MatchContext) -> Optional[Intent]:
    if not ctx.last_asset_id:
        return None
    return TagLastAsset(ctx.last_asset_id, m.group("tags").strip())


def _move_last(m: re.Match, ctx: MatchContext) -> Optional[Intent]:
    if not ctx.last_asset_id:
        return None
    return MoveLastAsset(ctx.last_asset_id, m.group("folder").strip())


# "the above image" is reserved for the contextual rules, the generic rules
# below never take it as a public id.

def _rename(m: re.Match, ctx: MatchContext) -> Optional[Intent]:
    if _is_above_image(m.group("from")):
        return None
    return RenameAsset(m.group("from").strip(), m.group("to").strip())


def _delete(m: re.Match, ctx: MatchContext) -> Optional[Intent]:
    if _is_above_image(m.group("id")):
        return None
    return DeleteAsset(m.group("id").strip())


def _tag(m: re.Match, ctx: MatchContext) -> Optional[Intent]:
    if _is_above_image(m.group("id")):
        return None
    return TagAsset(m.group("id").strip(), m.group("tags").strip())


def _move(m: re.Match, ctx: MatchContext) -> Optional[Intent]:
    if _is_above_image(m.group("id")):
        return None
    return MoveAsset(m.group("id").strip(), m.group("folder").strip())


def _create_folder(m: re.Match, ctx: MatchContext) -> Optional[Intent]:
    path = trim_slashes(m.group("path").strip())
    return CreateFolder(path) if path else None


def _rule(pattern: str, builder: Builder) -> Tuple[Pattern, Builder]:
    return re.compile(pattern, re.IGNORECASE), builder


RULES: List[Tuple[Pattern, Builder]] = [
    _rule(r"(?:list|show)\s+(?:images|assets|files|photos?)\s+(?:in|from|under|inside)\s+(?P<folder>.+)",
          _list_in_folder),
    _rule(r"(?:list|show)\s+folders(?:\s+(?:in|under|inside)\s+(?P<base>.+))?", _list_folders),
    _rule(r"(?:list|show)\s+(?:images|pics|photos?)", lambda m, ctx: ListImages()),
    _rule(r"images?", lambda m, ctx: ListImages()),
    _rule(r"rename the above image to\s+(?P<to>.+)", _rename_last),
    _rule(r"delete the above image", _delete_last),
    _rule(r"tag the above image with\s+(?P<tags>.+)", _tag_last),
    _rule(r"rename\s+(?P<from>.+?)\s+to\s+(?P<to>.+)", _rename),
    _rule(r"delete\s+(?P<id>.+)", _delete),
    _rule(r"tag\s+(?P<id>.+?)\s+with\s+(?P<tags>.+)", _tag),
    _rule(r"(?:create|make)\s+(?:a\s+)?folder\s+(?P<path>.+)", _create_folder),
    _rule(r"move the above image to\s+(?P<folder>.+)", _move_last),
    _rule(r"move\s+(?P<id>.+?)\s+to\s+(?P<folder>.+)", _move),
]

_UPLOAD_TARGET = re.compile(r"(?:upload\s+)?(?:to|into)\s+(?:(?:the\s+)?folder\s+)?(?P<folder>\S.*)", re.IGNORECASE)


def _upload_folder(text: str) -> Optional[str]:
    m = _UPLOAD_TARGET.fullmatch(text)
    if not m:
        return None
    return trim_slashes(m.group("folder").strip()) or None


def match_intent(
    text: str,
    file: Optional[Attachment] = None,
    last_asset_id: Optional[str] = None,
) -> Intent:
    text = (text or "").strip()

    if file is not None:
        return Upload(file, _upload_folder(text))

    ctx = MatchContext(text=text, last_asset_id=last_asset_id or None)
    for pattern, builder in RULES:
        m = pattern.fullmatch(text)
        if not m:
            continue
        intent = builder(m, ctx)
        if intent is not None:
            return intent

    return Help()
