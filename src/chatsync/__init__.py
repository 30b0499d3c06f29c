"""
chatsync — live message synchronization for chat clients.

Keeps one conversation's message list consistent across a history fetch, a
live push channel (SSE or Socket.IO) and the viewer's own sends.
"""

from chatsync.client import ChatSyncClient
from chatsync.config import SyncConfig
from chatsync.errors import AccessDeniedError, ChatSyncError, MalformedEventError, TransientError, TransportError
from chatsync.history import HistoryLoader
from chatsync.models.events import ConnectionState, TransportEvent
from chatsync.models.message import Message, Sender, Viewer
from chatsync.sender import BroadcastSendPipeline, DuplexSendPipeline, SendPipeline
from chatsync.store import MessageStore
from chatsync.supervisor import ConnectionSupervisor

__version__ = "0.1.0"
__all__ = [
    "ChatSyncClient",
    "SyncConfig",
    "ChatSyncError",
    "AccessDeniedError",
    "TransientError",
    "TransportError",
    "MalformedEventError",
    "HistoryLoader",
    "ConnectionState",
    "TransportEvent",
    "Message",
    "Sender",
    "Viewer",
    "SendPipeline",
    "DuplexSendPipeline",
    "BroadcastSendPipeline",
    "MessageStore",
    "ConnectionSupervisor",
]
