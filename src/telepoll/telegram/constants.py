from __future__ import annotations

from typing import Final, Literal

API_BASE_URL: Final = "https://api.telegram.org"

# What the user is about to receive: typing for text, upload_photo for photos,
# record_video/upload_video for videos, record_audio/upload_audio for audio,
# upload_document for general files, find_location for location data.
ChatAction = Literal[
    "typing",
    "upload_photo",
    "record_video",
    "upload_video",
    "record_audio",
    "upload_audio",
    "upload_document",
    "find_location",
]
CHAT_ACTIONS: Final[frozenset[str]] = frozenset(
    {
        "typing",
        "upload_photo",
        "record_video",
        "upload_video",
        "record_audio",
        "upload_audio",
        "upload_document",
        "find_location",
    }
)

ParseMode = Literal["Markdown", "MarkdownV2", "HTML"]
PARSE_MODES: Final[frozenset[str]] = frozenset({"Markdown", "MarkdownV2", "HTML"})

UPDATE_KINDS: Final[tuple[str, ...]] = (
    "message",
    "edited_message",
    "callback_query",
    "inline_query",
    "chosen_inline_result",
)

MAX_UPDATES_LIMIT: Final = 100
