from __future__ import annotations

import asyncio
import logging
import urllib.parse

from .errors import CallbackError

logger = logging.getLogger(__name__)

CALLBACK_PATH = "/callback"

# request line + headers; anything longer is not our redirect
MAX_LINE_BYTES = 8192
MAX_HEADER_LINES = 100
READ_TIMEOUT_S = 5.0

SUCCESS_RESPONSE = (
    b"HTTP/1.1 200 OK\r\n"
    b"content-length: 39\r\n"
    b"content-type: text/plain\r\n"
    b"connection: close\r\n"
    b"\r\n"
    b"Success! You may now close this window."
)


def parse_callback_request(request_line: bytes) -> tuple[str, str]:
    """
    `GET /callback?code=<code>&state=<state> HTTP/1.1` -> (code, state).

    Raises ValueError for anything else.
    """
    text = request_line.decode("ascii").strip()
    parts = text.split(" ")
    if len(parts) != 3:
        raise ValueError(f"Malformed request line: {text[:80]!r}")
    method, target, version = parts
    if method != "GET" or not version.startswith("HTTP/"):
        raise ValueError(f"Unexpected request: {method} {version}")

    url = urllib.parse.urlsplit(target)
    if url.path != CALLBACK_PATH:
        raise ValueError(f"Unexpected path: {url.path}")

    qs = urllib.parse.parse_qs(url.query, strict_parsing=True)
    if "error" in qs:
        raise ValueError(f"Authorization denied: {qs['error'][0]}")
    code = qs.get("code", [""])
    state = qs.get("state", [""])
    if len(code) != 1 or len(state) != 1 or not code[0] or not state[0]:
        raise ValueError("Missing or repeated code/state parameter")
    return code[0], state[0]


async def _read_request_line(reader: asyncio.StreamReader) -> bytes:
    line = await reader.readline()
    # drain headers so the browser gets our response instead of a reset
    for _ in range(MAX_HEADER_LINES):
        header = await reader.readline()
        if header in (b"\r\n", b"\n", b""):
            break
    return line


class CallbackListener:
    """
    Listens for exactly one usable OAuth redirect. Malformed connections are
    dropped and the listener keeps the port until a valid one arrives.
    """

    def __init__(self, host: str = "127.0.0.1", port: int = 8888):
        self.host = host
        self.requested_port = port
        self._server: asyncio.Server | None = None
        self._result: asyncio.Future[tuple[str, str]] | None = None

    async def start(self) -> None:
        if self._server is not None:
            return
        self._result = asyncio.get_running_loop().create_future()
        try:
            self._server = await asyncio.start_server(
                self._handle, self.host, self.requested_port, limit=MAX_LINE_BYTES
            )
        except OSError as e:
            raise CallbackError(f"Cannot listen on {self.host}:{self.requested_port}: {e}") from e
        logger.info("Waiting for OAuth callback on %s:%s", self.host, self.port)

    @property
    def port(self) -> int:
        if self._server is None or not self._server.sockets:
            return self.requested_port
        return self._server.sockets[0].getsockname()[1]

    async def _handle(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        try:
            line = await asyncio.wait_for(_read_request_line(reader), timeout=READ_TIMEOUT_S)
            code, state = parse_callback_request(line)
            writer.write(SUCCESS_RESPONSE)
            await writer.drain()
        except (asyncio.TimeoutError, ConnectionError, ValueError) as e:
            logger.info("Discarding callback connection: %s", e)
            return
        finally:
            writer.close()

        if self._result is not None and not self._result.done():
            self._result.set_result((code, state))

    async def wait(self) -> tuple[str, str]:
        if self._result is None:
            raise CallbackError("Listener was not started")
        try:
            return await self._result
        finally:
            await self.close()

    async def close(self) -> None:
        server, self._server = self._server, None
        if server is not None:
            server.close()
            await server.wait_closed()


async def await_authorization(host: str = "127.0.0.1", port: int = 8888) -> tuple[str, str]:
    listener = CallbackListener(host, port)
    await listener.start()
    return await listener.wait()
