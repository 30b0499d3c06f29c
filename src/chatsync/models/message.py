"""
Message and identity models.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class Sender(BaseModel):
    model_config = ConfigDict(extra="ignore")

    user_id: str
    username: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    @property
    def display_name(self) -> str:
        full = " ".join(p for p in (self.first_name, self.last_name) if p)
        return full or self.username or self.user_id


class Viewer(Sender):
    """The authenticated user this engine runs for."""


class Message(BaseModel):
    model_config = ConfigDict(extra="ignore")

    message_id: str
    chat_id: str
    content: str
    sender: Sender
    timestamp: datetime
    # Computed by MessageStore at merge time; whatever the server sends is overwritten.
    is_own_message: bool = False
