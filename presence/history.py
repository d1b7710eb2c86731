import asyncio
from concurrent.futures import ThreadPoolExecutor
from typing import Callable

from schemas.events import ChatBroadcast
from logging_config import get_logger

logger = get_logger(__name__)


class BackgroundHistoryWriter:
    """Chat history hook that persists off the delivery path.

    The blocking store call runs on a single writer thread, so messages land in
    history in the order they were relayed. The relay never waits for it and
    failures are only logged.
    """

    def __init__(self, backend_provider: Callable):
        self._backend_provider = backend_provider
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="chat-history")

    def __call__(self, room: str, message: ChatBroadcast):
        loop = asyncio.get_running_loop()
        record = message.model_dump(by_alias=True, mode="json", exclude_none=True)
        future = loop.run_in_executor(self._executor, self._write, room, record)
        future.add_done_callback(lambda f: self._report(f, room, record.get("id")))
        return future

    def _write(self, room: str, record: dict):
        return self._backend_provider().append_chat_message(room, record)

    @staticmethod
    def _report(future, room: str, message_id):
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            logger.error(f"Could not persist chat message {message_id} for room {room}: {error}")
