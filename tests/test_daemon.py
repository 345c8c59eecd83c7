import asyncio
import os
import signal
import sys

import pytest

from spotify_cli import paths
from spotify_cli.commands import daemon
from spotify_cli.response import ErrorKind, Response
from spotify_cli.rpc.dispatch import Dispatcher
from spotify_cli.rpc.server import RpcServer


class TestPidFile:
    """Tests for the PID file helpers."""

    def test_write_and_read(self, temp_dir):
        pid_file = temp_dir / "run" / "daemon.pid"
        daemon.write_pid(pid_file, 4321)
        assert daemon.read_pid(pid_file) == 4321

    def test_read_missing_or_garbage(self, temp_dir):
        pid_file = temp_dir / "daemon.pid"
        assert daemon.read_pid(pid_file) is None
        pid_file.write_text("not a pid")
        assert daemon.read_pid(pid_file) is None

    def test_remove_missing(self, temp_dir):
        daemon.remove_pid(temp_dir / "daemon.pid")

    def test_current_process_is_running(self):
        assert daemon.is_process_running(os.getpid()) is True


class TestLifecycle:
    """Tests for start/stop/status without spawning anything."""

    def test_child_command(self):
        assert daemon.daemon_command() == [sys.executable, "-m", "spotify_cli", "daemon", "run"]

    def test_status_not_running(self, home):
        response = daemon.daemon_status()
        assert response.message == "Daemon not running"
        assert response.payload["running"] is False
        assert response.payload["socket_exists"] is False
        assert response.payload["socket"] == str(paths.socket_file())

    def test_stop_without_pid_file(self, home):
        response = daemon.daemon_stop()
        assert response.code == 404
        assert response.error_kind == ErrorKind.NOT_FOUND

    def test_stop_removes_stale_pid_file(self, home, monkeypatch):
        monkeypatch.setattr(daemon, "is_process_running", lambda pid: False)
        daemon.write_pid(paths.pid_file(), 999999)

        response = daemon.daemon_stop()

        assert "stale" in response.message
        assert not paths.pid_file().exists()

    def test_start_refuses_second_daemon(self, home, monkeypatch):
        monkeypatch.setattr(daemon, "is_process_running", lambda pid: True)
        daemon.write_pid(paths.pid_file(), 1234)

        response = daemon.daemon_start()

        assert response.code == 409
        assert "1234" in response.message

    def test_start_spawns_detached_child(self, home, monkeypatch):
        """Test start launches ``daemon run`` and records the child PID."""
        launched = []

        class FakePopen:
            pid = 5555

            def __init__(self, args, **kwargs):
                launched.append((args, kwargs))

        monkeypatch.setattr(daemon.subprocess, "Popen", FakePopen)

        response = daemon.daemon_start()

        assert response.payload["pid"] == 5555
        assert daemon.read_pid(paths.pid_file()) == 5555
        args, kwargs = launched[0]
        assert args[-2:] == ["daemon", "run"]
        assert kwargs["stdout"] == daemon.subprocess.DEVNULL


class IdlePoller:
    async def run(self):
        await asyncio.Event().wait()


@pytest.mark.skipif(sys.platform.startswith("win"), reason="POSIX signals and Unix sockets")
class TestServe:
    """Tests for the foreground daemon loop."""

    def test_sigterm_with_connected_client(self, temp_dir):
        """Test a signal ends the loop even while a client holds a connection."""
        socket_path = temp_dir / "daemon.sock"
        dispatcher = Dispatcher({"ping": lambda p: Response.success(200, "pong")})
        server = RpcServer(socket_path, dispatcher=dispatcher)

        async def scenario():
            task = asyncio.create_task(daemon.serve(server, IdlePoller()))
            for _ in range(200):
                if socket_path.exists():
                    break
                await asyncio.sleep(0.01)
            reader, writer = await asyncio.open_unix_connection(str(socket_path))
            writer.write(b'{"jsonrpc":"2.0","method":"ping","id":1}\n')
            await writer.drain()
            reply = await asyncio.wait_for(reader.readline(), 3)

            os.kill(os.getpid(), signal.SIGTERM)
            await asyncio.wait_for(task, 3)
            tail = await asyncio.wait_for(reader.read(), 3)
            writer.close()
            return reply, tail

        reply, tail = asyncio.run(scenario())

        assert b'"pong"' in reply
        assert tail == b""
        assert not socket_path.exists()
