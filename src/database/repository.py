"""WireGuard Mesh Manager - Desired-State Repository

Maps database rows to domain entities. psycopg2 is blocking, so every
round-trip runs in a worker thread and the event loop keeps serving
signals and notifications meanwhile.
"""
import asyncio
import logging
import threading
from typing import Callable, List, Optional

import psycopg2

from database import schema
from database.listener import NotificationListener
from database.models import Client, ClientConnection, Server, ServerConnection, parse_ip
from errors import DatabaseError, UnknownClient

logger = logging.getLogger(__name__)


def _server_from_row(row) -> Server:
    return Server(
        name=row[0],
        subnet_addr=parse_ip(row[1]),
        subnet_len=int(row[2]),
        address=parse_ip(row[3]),
        public_address=parse_ip(row[4]),
        public_port=int(row[5]),
        public_key=row[6],
    )


class Repository:
    """Read access to the mesh topology stored in PostgreSQL."""

    def __init__(self, database_url: str, connect: Callable = psycopg2.connect):
        self.database_url = database_url
        self._connect = connect
        self._conn = None
        self._lock = threading.Lock()
        self._listeners: List[NotificationListener] = []

    def _get_connection(self):
        with self._lock:
            if self._conn is None or self._conn.closed:
                logger.debug("Connecting to the database")
                try:
                    self._conn = self._connect(self.database_url)
                    self._conn.autocommit = True
                except psycopg2.Error as e:
                    raise DatabaseError(f"Cannot connect to the database: {e}") from e
                logger.debug("Connected to the database")
            return self._conn

    def _execute(self, sql: str, params: tuple = (), fetch: bool = True) -> list:
        conn = self._get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, params)
                return cur.fetchall() if fetch else []
        except psycopg2.Error as e:
            raise DatabaseError(f"Query failed: {e}") from e

    async def _run(self, sql: str, params: tuple = (), fetch: bool = True) -> list:
        return await asyncio.to_thread(self._execute, sql, params, fetch)

    async def connect(self) -> None:
        """Open the query connection eagerly so startup fails fast."""
        await asyncio.to_thread(self._get_connection)

    async def bootstrap_schema(self) -> None:
        """Create tables, notify function and triggers if missing."""
        await self._run(schema.schema_sql(), fetch=False)
        logger.info("Database schema ready")

    async def list_servers(self) -> List[Server]:
        rows = await self._run(schema.SELECT_SERVERS + " ORDER BY name")
        return [_server_from_row(row) for row in rows]

    async def list_client_connections(self, server: Optional[str] = None) -> List[ClientConnection]:
        """Clients authorized on `server`, or on every server when None."""
        if server is None:
            rows = await self._run(schema.SELECT_CONNECTIONS + " ORDER BY server, name")
        else:
            rows = await self._run(
                schema.SELECT_CONNECTIONS + " WHERE server = %s ORDER BY name", (server,)
            )
        return [
            ClientConnection(
                server=row[0],
                client=Client(name=row[1], public_key=row[2]),
                address=parse_ip(row[3]),
            )
            for row in rows
        ]

    async def get_client(self, name: str) -> Client:
        rows = await self._run(schema.SELECT_CLIENT, (name,))
        if not rows:
            raise UnknownClient(name)
        return Client(name=rows[0][0], public_key=rows[0][1])

    async def list_server_connections(self, client: str) -> List[ServerConnection]:
        """Every server `client` may reach, with its address there."""
        rows = await self._run(schema.SELECT_SERVER_CONNECTIONS, (client,))
        return [
            ServerConnection(server=_server_from_row(row[:7]), address=parse_ip(row[7]))
            for row in rows
        ]

    async def subscribe(self, callback: Callable[[str], None]) -> NotificationListener:
        """Start forwarding `update_server` notifications to `callback`.

        The listener owns its own connection; notifications are delivered
        in arrival order and never dropped.
        """
        listener = NotificationListener(self.database_url, callback, connect=self._connect)
        await listener.start()
        self._listeners.append(listener)
        return listener

    async def close(self) -> None:
        for listener in self._listeners:
            listener.stop()
        self._listeners.clear()
        with self._lock:
            if self._conn is not None and not self._conn.closed:
                self._conn.close()
            self._conn = None
