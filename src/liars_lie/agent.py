"""
Agent Service - Holds one value and answers queries about it over TCP.

Each agent listens on an OS-assigned loopback port. A `talk` request is
answered with the agent's value, a `stop` request ends the service loop.
Truthful agents hold the secret value; liars hold a different, fixed value.
"""

import asyncio
import random
from typing import Optional

from .errors import BindFailure, ProtocolViolation, ReadFailure
from .logging_config import setup_logger
from .protocol import (
    DEFAULT_HOST,
    DEFAULT_TIMEOUT,
    MAX_REQUEST_SIZE,
    STOP,
    TALK,
    Endpoint,
    close_writer,
    encode_value,
)

logger = setup_logger(__name__)


def draw_value(target: int, max_value: int, is_liar: bool,
               rng: Optional[random.Random] = None) -> int:
    """
    Pick the value an agent will report for its whole lifetime.

    A truthful agent reports the target. A liar draws uniformly from
    [1, max_value] without the target: it samples one of the max_value - 1
    remaining slots and shifts values at or above the target up by one.
    """
    if not 1 <= target <= max_value:
        raise ValueError(f"Target {target} must be in [1, {max_value}]")
    if not is_liar:
        return target
    if max_value < 2:
        raise ValueError("A liar needs at least two possible values")

    rng = rng or random.Random()
    value = rng.randint(1, max_value - 1)
    if value >= target:
        value += 1
    return value


class Agent:
    """A single value-holding service that processes one connection at a time."""

    def __init__(self, value: int, is_liar: bool = False, host: str = DEFAULT_HOST,
                 read_timeout: float = DEFAULT_TIMEOUT):
        self._value = value
        self._payload = encode_value(value)
        self.is_liar = is_liar
        self.host = host
        self.read_timeout = read_timeout
        self.endpoint: Optional[Endpoint] = None
        self._server: Optional[asyncio.AbstractServer] = None
        self._lock: Optional[asyncio.Lock] = None
        self._stopped: Optional[asyncio.Event] = None

    @classmethod
    def create(cls, target: int, max_value: int, is_liar: bool,
               rng: Optional[random.Random] = None, **kwargs) -> "Agent":
        """Build an agent whose value follows its truthful/liar role."""
        return cls(draw_value(target, max_value, is_liar, rng), is_liar=is_liar, **kwargs)

    @property
    def value(self) -> int:
        return self._value

    @property
    def port(self) -> Optional[int]:
        return self.endpoint.port if self.endpoint else None

    @property
    def stopped(self) -> bool:
        return self._stopped is not None and self._stopped.is_set()

    async def start(self) -> Endpoint:
        """Bind a free port and start accepting connections."""
        if self._server is not None:
            raise RuntimeError("Agent already started")

        self._lock = asyncio.Lock()
        self._stopped = asyncio.Event()
        try:
            self._server = await asyncio.start_server(self._handle_connection, self.host, 0)
        except OSError as e:
            raise BindFailure(f"Agent could not bind on {self.host}: {e}") from e

        port = self._server.sockets[0].getsockname()[1]
        self.endpoint = Endpoint(self.host, port)
        logger.info(f"Agent {port} listening")
        return self.endpoint

    async def serve(self):
        """Run until a stop command arrives, then release the listening socket."""
        if self._server is None:
            raise RuntimeError("Agent must be started before serving")

        try:
            await self._stopped.wait()
        finally:
            self._server.close()
            await self._server.wait_closed()
        logger.debug(f"Agent {self.port} terminated")

    def stop(self):
        """Stop the service loop without going through the network."""
        if self._stopped is not None:
            self._stopped.set()

    async def _handle_connection(self, reader: asyncio.StreamReader,
                                 writer: asyncio.StreamWriter):
        async with self._lock:
            try:
                if not self.stopped:
                    await self._respond(reader, writer)
            except ProtocolViolation as e:
                logger.warning(f"Agent {self.port}: {e}")
            except (ReadFailure, OSError) as e:
                logger.warning(f"Agent {self.port}: error handling connection: {e}")
                writer.transport.abort()
            finally:
                await close_writer(writer)

    async def _respond(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
        message = await self._read_request(reader)

        if message == TALK:
            writer.write(self._payload)
            await writer.drain()
            logger.debug(f"Agent {self.port} sent {self._value}")
        elif message == STOP:
            logger.info(f"Agent {self.port} received stop")
            self._stopped.set()
        else:
            raise ProtocolViolation(f"Received incorrect message : {message}")

    async def _read_request(self, reader: asyncio.StreamReader) -> str:
        try:
            data = await asyncio.wait_for(reader.read(MAX_REQUEST_SIZE), timeout=self.read_timeout)
        except asyncio.TimeoutError as e:
            raise ReadFailure(f"No request within {self.read_timeout}s") from e
        except OSError as e:
            raise ReadFailure(str(e)) from e

        try:
            return data.decode('utf-8')
        except UnicodeDecodeError as e:
            raise ProtocolViolation(f"Request is not UTF-8: {data!r}") from e
