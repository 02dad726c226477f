"""WireGuard Mesh Manager - Change Notification Listener"""
import asyncio
import logging
from typing import Callable, Optional

import psycopg2

from database.schema import CHANNEL
from errors import DatabaseError

logger = logging.getLogger(__name__)


class NotificationListener:
    """Drains NOTIFY messages from a dedicated connection.

    The connection is polled from the event loop whenever its socket is
    readable, so the listener never competes with queries for the query
    connection's protocol state.
    """

    def __init__(
        self,
        database_url: str,
        callback: Callable[[str], None],
        connect: Callable = psycopg2.connect,
        channel: str = CHANNEL,
    ):
        self.database_url = database_url
        self.callback = callback
        self.channel = channel
        self._connect = connect
        self._conn = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._fd: Optional[int] = None

    @property
    def running(self) -> bool:
        return self._fd is not None

    def _open(self):
        try:
            conn = self._connect(self.database_url)
            conn.autocommit = True
            with conn.cursor() as cur:
                cur.execute(f"LISTEN {self.channel}")
        except psycopg2.Error as e:
            raise DatabaseError(f"Cannot listen on {self.channel}: {e}") from e
        return conn

    async def start(self) -> None:
        self._conn = await asyncio.to_thread(self._open)
        self._loop = asyncio.get_running_loop()
        self._fd = self._conn.fileno()
        self._loop.add_reader(self._fd, self._on_readable)
        logger.info(f"Listening for {self.channel} notifications")

    def _on_readable(self) -> None:
        try:
            self._conn.poll()
        except psycopg2.Error as e:
            logger.error(f"Notification connection lost, only reload signals will trigger updates: {e}")
            self.stop()
            return
        while self._conn.notifies:
            notify = self._conn.notifies.pop(0)
            logger.info(f"Database update notification: channel={notify.channel} pid={notify.pid}")
            self.callback(notify.channel)

    def stop(self) -> None:
        if self._fd is not None and self._loop is not None:
            self._loop.remove_reader(self._fd)
        self._fd = None
        if self._conn is not None and not self._conn.closed:
            self._conn.close()
