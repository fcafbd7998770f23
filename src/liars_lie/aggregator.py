"""
Round Aggregator - Queries every agent and tallies the answers.

All connections are opened and sent `talk` before any answer is read, and all
answers share one deadline, so a round takes about as long as the slowest
agent rather than the sum of all.
"""

import asyncio
from collections import Counter
from typing import Dict, Iterable, List, Optional, Tuple

from .errors import ConnectFailure, ProtocolViolation, ReadFailure
from .logging_config import setup_logger
from .protocol import DEFAULT_TIMEOUT, TALK, Endpoint, close_writer, decode_value, open_endpoint

logger = setup_logger(__name__)


class Tally:
    """Occurrence count of each value reported during one round."""

    def __init__(self, counts: Optional[Dict[int, int]] = None):
        self.counts = Counter(counts or {})

    def add(self, value: int):
        self.counts[value] += 1

    @property
    def total(self) -> int:
        """Number of valid responses, which can be lower than the number of agents."""
        return sum(self.counts.values())

    def count(self, value: int) -> int:
        return self.counts[value]

    def values(self) -> List[int]:
        return sorted(self.counts)

    def __len__(self) -> int:
        return len(self.counts)

    def __contains__(self, value: int) -> bool:
        return value in self.counts

    def __eq__(self, other) -> bool:
        if isinstance(other, Tally):
            return self.counts == other.counts
        return NotImplemented

    def __repr__(self) -> str:
        return f"Tally({dict(sorted(self.counts.items()))})"


async def _send_talk(endpoint: Endpoint, timeout: float) -> Tuple[asyncio.StreamReader, asyncio.StreamWriter]:
    reader, writer = await open_endpoint(endpoint, timeout)
    try:
        writer.write(TALK.encode())
        await asyncio.wait_for(writer.drain(), timeout=timeout)
    except (asyncio.TimeoutError, OSError) as e:
        writer.transport.abort()
        raise ConnectFailure(f"Failed to send '{TALK}' to {endpoint}: {e}") from e
    return reader, writer


async def _read_answer(endpoint: Endpoint, reader: asyncio.StreamReader, deadline: float) -> int:
    remaining = deadline - asyncio.get_running_loop().time()
    try:
        # The agent closes the connection after answering
        payload = await asyncio.wait_for(reader.read(), timeout=max(remaining, 0.0))
    except asyncio.TimeoutError as e:
        raise ReadFailure(f"No answer from {endpoint} before the round deadline") from e
    except OSError as e:
        raise ReadFailure(f"Failed to read from {endpoint}: {e}") from e

    try:
        return decode_value(payload)
    except ProtocolViolation as e:
        raise ProtocolViolation(f"Received incorrect data from {endpoint}: {e}") from e


async def _collect(endpoint: Endpoint, reader: asyncio.StreamReader,
                   writer: asyncio.StreamWriter, deadline: float) -> Optional[int]:
    try:
        value = await _read_answer(endpoint, reader, deadline)
    except (ReadFailure, ProtocolViolation) as e:
        logger.warning(str(e))
        writer.transport.abort()
        return None
    finally:
        await close_writer(writer)

    logger.debug(f"Received {value} from {endpoint}")
    return value


async def query_all(endpoints: Iterable[Endpoint], timeout: float = DEFAULT_TIMEOUT) -> Tally:
    """Ask every agent for its value. Unreachable or misbehaving agents abstain."""
    tally = Tally()
    connections = []

    # Send phase
    for endpoint in endpoints:
        try:
            reader, writer = await _send_talk(endpoint, timeout)
        except ConnectFailure as e:
            logger.warning(str(e))
            continue
        connections.append((endpoint, reader, writer))

    # Receive phase: every answer must arrive before one shared deadline.
    # Reads wait together so a hung agent cannot eat the time of the next ones.
    deadline = asyncio.get_running_loop().time() + timeout
    answers = await asyncio.gather(*(
        _collect(endpoint, reader, writer, deadline)
        for endpoint, reader, writer in connections
    ))

    # Tallied in the order connections were opened
    for value in answers:
        if value is not None:
            tally.add(value)

    logger.info(f"Collected {tally.total} answer(s) from {len(connections)} agent(s): {tally}")
    return tally
