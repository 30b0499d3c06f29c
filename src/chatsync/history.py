"""
History loader — one-shot fetch of a conversation's persisted messages.
"""

import logging
from urllib.parse import quote

from pydantic import ValidationError

from chatsync.errors import TransientError
from chatsync.models.message import Message
from chatsync.transport.http import HttpClient

logger = logging.getLogger(__name__)


class HistoryLoader:
    def __init__(self, http: HttpClient):
        self._http = http

    async def fetch(self, chat_id: str) -> list[Message]:
        """Fetch messages for chat_id, oldest first. No retries.

        Raises AccessDeniedError if the viewer may not read this chat and
        TransientError for anything else that goes wrong.
        """
        data = await self._http.get(f"/chats/{quote(chat_id, safe='')}/messages")
        if not isinstance(data, list):
            raise TransientError(f"Unexpected history payload for chat {chat_id}: {type(data).__name__}")

        messages: list[Message] = []
        for raw in data:
            try:
                messages.append(Message.model_validate(raw))
            except ValidationError as e:
                logger.warning(f"Skipping invalid history entry in chat {chat_id}: {e.error_count()} error(s)")
        logger.debug(f"Loaded {len(messages)} messages for chat {chat_id}")
        return messages
