"""
Message store — the ordered, deduplicated message list of one open conversation.

Two producers feed it: the history loader (load_history) and the live event
stream (merge_live). Each message_id appears at most once. The list keeps the
order in which messages were observed, history first, and is never re-sorted
by timestamp.
"""

from typing import Callable, Iterable, Iterator, Optional

from chatsync.models.message import Message, Sender

StoreListener = Callable[[list[Message]], None]


class MessageStore:
    def __init__(self, chat_id: str, viewer_id: str):
        self._chat_id = chat_id
        self._viewer_id = viewer_id
        self._entries: list[Message] = []
        self._index: dict[str, Message] = {}
        # ids that arrived through merge_live and must survive a history reload
        self._live_ids: set[str] = set()
        self._listeners: list[StoreListener] = []

    @property
    def chat_id(self) -> str:
        return self._chat_id

    @property
    def viewer_id(self) -> str:
        return self._viewer_id

    @property
    def messages(self) -> list[Message]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[Message]:
        return iter(list(self._entries))

    def __contains__(self, message_id: object) -> bool:
        return message_id in self._index

    def get(self, message_id: str) -> Optional[Message]:
        return self._index.get(message_id)

    def add_listener(self, listener: StoreListener) -> Callable[[], None]:
        """Call listener with a snapshot after every change. Returns a remove function."""
        self._listeners.append(listener)
        def remove() -> None:
            try:
                self._listeners.remove(listener)
            except ValueError:
                pass
        return remove

    def _classify(self, message: Message) -> Message:
        return message.model_copy(update={"is_own_message": message.sender.user_id == self._viewer_id})

    def _notify(self) -> None:
        snapshot = self.messages
        for listener in list(self._listeners):
            listener(snapshot)

    def load_history(self, messages: Iterable[Message]) -> None:
        """Seed or replace the history part of the list.

        History goes first. Entries already merged from the live stream are
        kept after it in their arrival order, unless the history carries the
        same id, in which case the history copy and position win.
        """
        entries: list[Message] = []
        index: dict[str, Message] = {}
        for message in messages:
            if message.chat_id != self._chat_id or message.message_id in index:
                continue
            classified = self._classify(message)
            entries.append(classified)
            index[message.message_id] = classified

        for message in self._entries:
            if message.message_id in self._live_ids and message.message_id not in index:
                entries.append(message)
                index[message.message_id] = message

        self._entries = entries
        self._index = index
        self._notify()

    def merge_live(self, message: Message) -> bool:
        """Append a live message. Returns False when it was skipped."""
        if message.chat_id != self._chat_id:
            return False
        if message.message_id in self._index:
            return False
        classified = self._classify(message)
        self._entries.append(classified)
        self._index[message.message_id] = classified
        self._live_ids.add(message.message_id)
        self._notify()
        return True

    def clear(self) -> None:
        self._entries = []
        self._index = {}
        self._live_ids = set()
        self._notify()

    def other_participant(self) -> Optional[Sender]:
        """First sender in the list who is not the viewer."""
        for message in self._entries:
            if message.sender.user_id != self._viewer_id:
                return message.sender
        return None
