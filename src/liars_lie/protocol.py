"""
Wire protocol shared by agents and the coordinator.

One request per TCP connection: the client writes an ASCII command, the agent
either answers with its value as a big-endian unsigned 16-bit integer or
closes the connection without replying.
"""

import asyncio
import struct
from typing import NamedTuple

from .errors import ConnectFailure, ProtocolViolation
from .logging_config import setup_logger

logger = setup_logger(__name__)

TALK = "talk"
STOP = "stop"

VALUE_FORMAT = ">H"
VALUE_SIZE = struct.calcsize(VALUE_FORMAT)
MAX_WIRE_VALUE = 0xFFFF
# Largest request an agent reads from one connection
MAX_REQUEST_SIZE = 1024

DEFAULT_HOST = "127.0.0.1"
DEFAULT_TIMEOUT = 2.0


class Endpoint(NamedTuple):
    """Network address of an agent."""

    host: str
    port: int

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"


def encode_value(value: int) -> bytes:
    """Encode an agent value in network byte order."""
    if not 0 <= value <= MAX_WIRE_VALUE:
        raise ValueError(f"Value {value} does not fit in 16 bits")
    return struct.pack(VALUE_FORMAT, value)


def decode_value(payload: bytes) -> int:
    """Decode a `talk` response, rejecting anything but exactly two bytes."""
    if len(payload) != VALUE_SIZE:
        raise ProtocolViolation(
            f"Expected {VALUE_SIZE} bytes, received {len(payload)}: {payload!r}"
        )
    return struct.unpack(VALUE_FORMAT, payload)[0]


async def open_endpoint(endpoint: Endpoint, timeout: float):
    """Open a connection to an agent, converting errors to ConnectFailure."""
    try:
        return await asyncio.wait_for(
            asyncio.open_connection(endpoint.host, endpoint.port), timeout=timeout
        )
    except asyncio.TimeoutError as e:
        raise ConnectFailure(f"Timed out connecting to {endpoint}") from e
    except OSError as e:
        raise ConnectFailure(f"Failed to connect to {endpoint}: {e}") from e


async def close_writer(writer: asyncio.StreamWriter):
    """Close a stream, logging errors raised by a peer that already went away."""
    writer.close()
    try:
        await writer.wait_closed()
    except (ConnectionError, OSError) as e:
        logger.debug(f"Ignoring error while closing connection: {e}")


async def send_command(endpoint: Endpoint, command: str, timeout: float = DEFAULT_TIMEOUT):
    """Send a command that expects no response (fire-and-forget)."""
    _, writer = await open_endpoint(endpoint, timeout)
    try:
        writer.write(command.encode())
        await asyncio.wait_for(writer.drain(), timeout=timeout)
    except (asyncio.TimeoutError, OSError) as e:
        raise ConnectFailure(f"Failed to send '{command}' to {endpoint}: {e}") from e
    finally:
        await close_writer(writer)
