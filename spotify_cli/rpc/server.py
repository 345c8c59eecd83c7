"""
Line-delimited JSON-RPC over a Unix domain socket.

Each connection runs one task that waits on whichever comes first: the next
request line from the client or the next event from the broadcaster. A
request is answered before the next line is read, so replies keep request
order; events may land between replies.
"""

import asyncio
import logging

from .. import paths
from . import protocol
from .dispatch import Dispatcher
from .events import Broadcaster

logger = logging.getLogger(__name__)

READ_LIMIT = 1024 * 1024


class RpcServer:
    def __init__(self, socket_path=None, dispatcher=None, broadcaster=None):
        self.socket_path = socket_path if socket_path is not None else paths.socket_file()
        self.dispatcher = dispatcher if dispatcher is not None else Dispatcher()
        self.broadcaster = broadcaster if broadcaster is not None else Broadcaster()
        self.server = None

    async def start(self):
        if self.socket_path.exists() or self.socket_path.is_symlink():
            self.socket_path.unlink()
        self.socket_path.parent.mkdir(parents=True, exist_ok=True)
        self.server = await asyncio.start_unix_server(
            self._handle_client, path=str(self.socket_path), limit=READ_LIMIT
        )
        logger.info("RPC server listening on %s", self.socket_path)

    async def serve_forever(self):
        if self.server is None:
            await self.start()
        await self.server.serve_forever()

    def shutdown(self):
        """Stop accepting connections and wake every connection task so it ends."""
        self.broadcaster.close()
        if self.server is not None:
            self.server.close()

    async def close(self):
        self.shutdown()
        if self.server is not None:
            await self.server.wait_closed()
            self.server = None
        if self.socket_path.exists():
            self.socket_path.unlink()
        logger.info("RPC server stopped")

    async def process_line(self, line):
        """Reply dict for one request line, or None (blank line or notification)."""
        line = line.strip()
        if not line:
            return None
        try:
            request = protocol.RpcRequest.parse(line)
        except protocol.RpcProtocolError as e:
            logger.debug("Rejected request line: %s", e.message)
            return protocol.error_response(None, e.code, e.message)

        try:
            response = await asyncio.to_thread(
                self.dispatcher.dispatch, request.method, request.params
            )
        except Exception as e:
            logger.exception("Handler for %s failed", request.method)
            if request.is_notification:
                return None
            return protocol.error_response(
                request.id, protocol.INTERNAL_ERROR, f"Internal error: {e}"
            )
        if request.is_notification:
            return None
        return protocol.from_response(request.id, response)

    async def _handle_client(self, reader, writer):
        logger.debug("Client connected")
        queue = self.broadcaster.subscribe()
        read_task = None
        event_task = None
        try:
            while True:
                if read_task is None:
                    read_task = asyncio.create_task(reader.readline())
                if event_task is None:
                    event_task = asyncio.create_task(queue.get())
                done, _ = await asyncio.wait(
                    {read_task, event_task}, return_when=asyncio.FIRST_COMPLETED
                )

                if read_task in done:
                    line = read_task.result()
                    read_task = None
                    if not line:
                        logger.debug("Client disconnected")
                        break
                    reply = await self.process_line(line.decode("utf-8", errors="replace"))
                    if reply is not None:
                        writer.write(protocol.encode(reply))
                        await writer.drain()

                if event_task in done:
                    message = event_task.result()
                    event_task = None
                    if message is None:
                        break
                    writer.write(protocol.encode(message))
                    await writer.drain()
        except (ConnectionError, ValueError) as e:
            logger.debug("Client connection ended: %s", e)
        finally:
            for task in (read_task, event_task):
                if task is not None:
                    task.cancel()
            self.broadcaster.unsubscribe(queue)
            writer.close()
