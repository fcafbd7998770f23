"""Shared test fixtures.

Networked tests run real agents on OS-assigned loopback ports.
"""

import asyncio
import random
import socket
from contextlib import asynccontextmanager
from typing import AsyncIterator, List

import pytest

from liars_lie.agent import Agent
from liars_lie.registry import Registry

FAST_TIMEOUT = 0.5


@pytest.fixture
def registry(tmp_path) -> Registry:
    """Registry file in a per-test directory."""
    return Registry(tmp_path / "agent.config")


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def timeout() -> float:
    return FAST_TIMEOUT


@pytest.fixture
def closed_port() -> int:
    """A loopback port with nothing listening on it."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@asynccontextmanager
async def _running_agents(*agents: Agent) -> AsyncIterator[List[Agent]]:
    tasks = []
    try:
        for agent in agents:
            await agent.start()
            tasks.append(asyncio.create_task(agent.serve()))
        yield list(agents)
    finally:
        for agent in agents:
            agent.stop()
        await asyncio.gather(*tasks, return_exceptions=True)


@pytest.fixture
def running_agents():
    """Start agents for the duration of an `async with` block."""
    return _running_agents


async def talk(port: int, message: bytes = b"talk", timeout: float = FAST_TIMEOUT) -> bytes:
    """Send one raw request to an agent and return everything it answers."""
    reader, writer = await asyncio.open_connection("127.0.0.1", port)
    try:
        writer.write(message)
        await writer.drain()
        return await asyncio.wait_for(reader.read(), timeout=timeout)
    finally:
        writer.close()
        await writer.wait_closed()


@pytest.fixture
def raw_request():
    """Send raw bytes to a port and collect the reply."""
    return talk
