"""
Background daemon lifecycle.

``daemon start`` re-launches this program as ``daemon run`` in a detached
process and records its PID; ``daemon run`` serves the RPC socket and the
event poller in the foreground until SIGINT or SIGTERM.
"""

import asyncio
import logging
import os
import signal
import subprocess
import sys

from .. import paths
from ..paths import PathError
from ..response import ErrorKind, Response
from ..rpc.events import Broadcaster, EventPoller
from ..rpc.server import RpcServer
from .common import Abort, handler

logger = logging.getLogger(__name__)


def _path(getter):
    try:
        return getter()
    except PathError as e:
        raise Abort(
            Response.err_with_details(
                500, "Could not locate config directory", ErrorKind.STORAGE, str(e)
            )
        ) from e


def read_pid(path):
    try:
        return int(path.read_text().strip())
    except (OSError, ValueError):
        return None


def write_pid(path, pid):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(str(pid))


def remove_pid(path):
    try:
        path.unlink()
    except FileNotFoundError:
        pass


def is_process_running(pid):
    if sys.platform.startswith("win"):
        result = subprocess.run(
            ["tasklist", "/FI", f"PID eq {pid}"], capture_output=True, text=True
        )
        return str(pid) in result.stdout
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        # Exists but owned by someone else.
        return True
    return True


def daemon_command():
    return [sys.executable, "-m", "spotify_cli", "daemon", "run"]


@handler
def daemon_start():
    pid_file = _path(paths.pid_file)
    socket_file = _path(paths.socket_file)

    pid = read_pid(pid_file)
    if pid is not None:
        if is_process_running(pid):
            return Response.err(409, f"Daemon already running (PID {pid})", ErrorKind.VALIDATION)
        remove_pid(pid_file)

    kwargs = {}
    if sys.platform.startswith("win"):
        kwargs["creationflags"] = subprocess.DETACHED_PROCESS
    else:
        kwargs["start_new_session"] = True
    try:
        child = subprocess.Popen(
            daemon_command(),
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            **kwargs,
        )
    except OSError as e:
        return Response.err_with_details(500, "Failed to start daemon", ErrorKind.STORAGE, str(e))

    try:
        write_pid(pid_file, child.pid)
    except OSError as e:
        return Response.err_with_details(500, "Failed to write PID file", ErrorKind.STORAGE, str(e))
    logger.info("Daemon started with PID %s", child.pid)
    return Response.success_with_payload(
        200, "Daemon started", {"pid": child.pid, "socket": str(socket_file)}
    )


@handler
def daemon_stop():
    pid_file = _path(paths.pid_file)
    pid = read_pid(pid_file)
    if pid is None:
        return Response.err(404, "Daemon not running (no PID file)", ErrorKind.NOT_FOUND)
    if not is_process_running(pid):
        remove_pid(pid_file)
        return Response.err(
            404, "Daemon not running (stale PID file removed)", ErrorKind.NOT_FOUND
        )

    if sys.platform.startswith("win"):
        subprocess.run(["taskkill", "/PID", str(pid), "/F"], capture_output=True)
    else:
        try:
            os.kill(pid, signal.SIGTERM)
        except ProcessLookupError:
            logger.debug("Daemon %s exited before SIGTERM", pid)
    remove_pid(pid_file)
    logger.info("Daemon %s stopped", pid)
    return Response.success_with_payload(200, "Daemon stopped", {"pid": pid})


@handler
def daemon_status():
    pid_file = _path(paths.pid_file)
    socket_file = _path(paths.socket_file)
    pid = read_pid(pid_file)
    running = pid is not None and is_process_running(pid)
    return Response.success_with_payload(
        200,
        "Daemon running" if running else "Daemon not running",
        {
            "running": running,
            "pid": pid,
            "socket": str(socket_file),
            "socket_exists": socket_file.exists(),
        },
    )


async def serve(server, poller):
    """Run ``server`` and ``poller`` until SIGINT/SIGTERM, then shut both down."""
    loop = asyncio.get_running_loop()
    stop = asyncio.Event()
    for signum in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(signum, stop.set)

    await server.start()
    poll_task = asyncio.create_task(poller.run())
    serve_task = asyncio.create_task(server.serve_forever())
    stop_task = asyncio.create_task(stop.wait())
    try:
        done, _ = await asyncio.wait(
            {serve_task, stop_task}, return_when=asyncio.FIRST_COMPLETED
        )
        if serve_task in done and not serve_task.cancelled():
            serve_task.result()
        logger.info("Received shutdown signal")
    finally:
        # Connections must end first: from 3.12 a cancelled serve_forever()
        # waits for every open connection to close.
        server.shutdown()
        for task in (poll_task, serve_task, stop_task):
            task.cancel()
        await asyncio.gather(poll_task, serve_task, stop_task, return_exceptions=True)
        await server.close()
        for signum in (signal.SIGINT, signal.SIGTERM):
            loop.remove_signal_handler(signum)


@handler
def daemon_run():
    pid_file = _path(paths.pid_file)
    socket_file = _path(paths.socket_file)
    try:
        write_pid(pid_file, os.getpid())
    except OSError as e:
        return Response.err_with_details(500, "Failed to write PID file", ErrorKind.STORAGE, str(e))

    broadcaster = Broadcaster()
    server = RpcServer(socket_file, broadcaster=broadcaster)
    poller = EventPoller(broadcaster)
    logger.info("Starting daemon (PID %s) on %s", os.getpid(), socket_file)
    try:
        asyncio.run(serve(server, poller))
    except OSError as e:
        logger.error("Daemon server error: %s", e)
        return Response.err_with_details(500, "Server error", ErrorKind.STORAGE, str(e))
    finally:
        remove_pid(pid_file)
    return Response.success(200, "Daemon stopped")
