"""
chatsync error types.

AccessDenied is the one failure surfaced with its own kind; everything that
touches the network is otherwise Transient.
"""

from typing import Any, Optional


class ChatSyncError(Exception):
    def __init__(self, code: str, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.code = code
        self.details = details


class AccessDeniedError(ChatSyncError):
    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__("access_denied", message, details)


class TransientError(ChatSyncError):
    def __init__(self, message: str, code: str = "transient", details: Optional[dict[str, Any]] = None):
        super().__init__(code, message, details)


class TransportError(TransientError):
    def __init__(self, message: str):
        super().__init__(message, code="transport_error")


class MalformedEventError(ChatSyncError):
    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__("malformed_event", message, details)
