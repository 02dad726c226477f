"""WireGuard Mesh Manager - Event Dispatcher

Database notifications and signals are funneled into one unbounded FIFO
queue drained by a single consumer, which is the only place a cycle ever
runs. Cycles are therefore strictly sequential; no lock is needed.
"""
import asyncio
import enum
import logging
import signal
from dataclasses import dataclass

from daemon.reconciler import Reconciler
from errors import MeshError
from executor.interface import InterfaceManager

logger = logging.getLogger(__name__)

RELOAD_SIGNALS = (signal.SIGUSR1,)
SHUTDOWN_SIGNALS = (signal.SIGTERM, signal.SIGINT)


class EventKind(enum.Enum):
    NOTIFY = "notify"
    RELOAD = "reload"
    SHUTDOWN = "shutdown"


@dataclass(frozen=True)
class Event:
    kind: EventKind
    detail: str = ""

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.detail}" if self.detail else self.kind.value


class EventDispatcher:
    def __init__(self, reconciler: Reconciler, interfaces: InterfaceManager, device_name: str):
        self.reconciler = reconciler
        self.interfaces = interfaces
        self.device_name = device_name
        self.queue: "asyncio.Queue[Event]" = asyncio.Queue()
        self.failed_cycles = 0

    def submit(self, event: Event) -> None:
        """Enqueue without blocking; the queue is unbounded."""
        self.queue.put_nowait(event)

    def notify(self, channel: str) -> None:
        """Callback for the database notification listener."""
        self.submit(Event(EventKind.NOTIFY, channel))

    def install_signal_handlers(self, loop: asyncio.AbstractEventLoop) -> None:
        for sig in RELOAD_SIGNALS:
            loop.add_signal_handler(sig, self.submit, Event(EventKind.RELOAD, sig.name))
        for sig in SHUTDOWN_SIGNALS:
            loop.add_signal_handler(sig, self.submit, Event(EventKind.SHUTDOWN, sig.name))

    def remove_signal_handlers(self, loop: asyncio.AbstractEventLoop) -> None:
        for sig in RELOAD_SIGNALS + SHUTDOWN_SIGNALS:
            loop.remove_signal_handler(sig)

    async def run(self) -> int:
        """Serve events until shutdown and return the process exit status.

        The startup cycle runs before any queued event and its errors
        propagate: there is nothing to serve without an initial config.
        """
        await self.reconciler.run_cycle("startup")
        logger.info("Server setup done")

        while True:
            event = await self.queue.get()
            if event.kind is EventKind.SHUTDOWN:
                logger.info(f"Shutdown requested ({event.detail})")
                return await self.shutdown()
            await self.handle(event)

    async def handle(self, event: Event) -> bool:
        """Run one cycle for `event`. A failure only abandons this cycle."""
        try:
            await self.reconciler.run_cycle(str(event))
        except MeshError as e:
            self.failed_cycles += 1
            logger.error(f"Update of {self.device_name} failed ({event}): {e}")
            return False
        except Exception:
            self.failed_cycles += 1
            logger.exception(f"Unexpected error updating {self.device_name} ({event})")
            return False
        return True

    async def shutdown(self) -> int:
        try:
            await self.interfaces.teardown(self.device_name)
        except MeshError as e:
            logger.error(f"Error tearing down the server: {e}")
            return 1
        logger.info(f"Interface {self.device_name} removed")
        return 0
