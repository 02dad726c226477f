"""
WireGuard Mesh Manager - Entry Point Tests
"""
import functools
from unittest.mock import AsyncMock, MagicMock, patch

import psycopg2
import pytest

import main
from daemon.dispatcher import EventDispatcher
from database.repository import Repository
from errors import NotRegistered

CONFIG_YAML = """\
name: S1
private_key: S1PRIVATEKEY=
device_name: wg0
database_url: postgresql://localhost/wireguard
base_domain: mesh.local
dns_hosts_file: {hosts}
network: 10.0.0.0/16
"""


@pytest.fixture
def config_file(tmp_path, monkeypatch):
    path = tmp_path / "config.yaml"
    path.write_text(CONFIG_YAML.format(hosts=tmp_path / "hosts"))
    monkeypatch.setenv("WG_MANAGER_CONFIG", str(path))
    return path


class OrderedRepository:
    """Repository stand-in that records the order of startup calls."""

    def __init__(self, database_url, steps):
        self.database_url = database_url
        self.steps = steps

    async def connect(self):
        self.steps.append("connect")

    async def bootstrap_schema(self):
        self.steps.append("bootstrap")

    async def subscribe(self, callback):
        self.steps.append("subscribe")

    async def close(self):
        self.steps.append("close")


class TestRun:
    """Tests for the process exit status."""

    def test_missing_config_exits_1(self, tmp_path, monkeypatch):
        """Test a missing config.yaml ends the process with status 1."""
        monkeypatch.delenv("WG_MANAGER_CONFIG", raising=False)
        monkeypatch.chdir(tmp_path)

        with pytest.raises(SystemExit) as excinfo:
            main.run()

        assert excinfo.value.code == 1

    def test_schema_bootstrap_failure_exits_1(self, config_file):
        """Test a failing DDL statement is fatal and still closes the database."""
        cursor = MagicMock()
        cursor.execute.side_effect = psycopg2.ProgrammingError("permission denied for schema public")
        conn = MagicMock()
        conn.closed = 0
        conn.cursor.return_value.__enter__.return_value = cursor
        connect = MagicMock(return_value=conn)

        with patch.object(main, "Repository", functools.partial(Repository, connect=connect)), \
                patch.object(EventDispatcher, "install_signal_handlers") as install, \
                patch.object(EventDispatcher, "run", new_callable=AsyncMock) as dispatch:
            with pytest.raises(SystemExit) as excinfo:
                main.run()

        assert excinfo.value.code == 1
        conn.close.assert_called_once()
        install.assert_not_called()
        dispatch.assert_not_awaited()

    def test_exit_status_from_dispatcher(self, config_file):
        """Test the teardown status returned by the dispatcher becomes the exit status."""
        with patch.object(main, "serve", AsyncMock(return_value=1)):
            with pytest.raises(SystemExit) as excinfo:
                main.run()

        assert excinfo.value.code == 1


class TestServe:
    """Tests for the startup sequence."""

    @pytest.mark.asyncio
    async def test_startup_order_and_cleanup(self, server_config):
        """Test setup runs in order before the dispatcher and is undone afterwards."""
        steps = []
        web_runner = MagicMock()
        web_runner.cleanup = AsyncMock(side_effect=lambda: steps.append("web cleanup"))

        async def start_web_server(app, host, port):
            steps.append("web")
            return web_runner

        async def run(self):
            steps.append("dispatch")
            return 0

        with patch.object(main, "Repository", functools.partial(OrderedRepository, steps=steps)), \
                patch.object(main, "start_web_server", start_web_server), \
                patch.object(EventDispatcher, "install_signal_handlers",
                             lambda self, loop: steps.append("signals")), \
                patch.object(EventDispatcher, "remove_signal_handlers",
                             lambda self, loop: steps.append("unsignals")), \
                patch.object(EventDispatcher, "run", run):
            status = await main.serve(server_config)

        assert status == 0
        assert steps == [
            "connect", "bootstrap", "subscribe", "web", "signals", "dispatch",
            "unsignals", "web cleanup", "close",
        ]

    @pytest.mark.asyncio
    async def test_startup_cycle_failure_propagates(self, server_config):
        """Test a failed startup cycle propagates after cleanup."""
        steps = []

        async def run(self):
            raise NotRegistered("S1")

        with patch.object(main, "Repository", functools.partial(OrderedRepository, steps=steps)), \
                patch.object(main, "start_web_server", AsyncMock(return_value=MagicMock(cleanup=AsyncMock()))), \
                patch.object(EventDispatcher, "install_signal_handlers"), \
                patch.object(EventDispatcher, "remove_signal_handlers") as remove, \
                patch.object(EventDispatcher, "run", run):
            with pytest.raises(NotRegistered):
                await main.serve(server_config)

        remove.assert_called_once()
        assert steps[-1] == "close"
