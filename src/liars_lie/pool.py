"""
Agent Pool - Spawns the agents of a game and supervises their tasks.

Every agent runs as its own asyncio task. Failures are collected when the
pool is joined and handed back to the caller instead of being raised.
"""

import asyncio
import random
from typing import List, NamedTuple, Optional, Tuple

from .agent import Agent
from .config import GameConfig
from .errors import BindFailure
from .logging_config import setup_logger
from .protocol import DEFAULT_HOST, DEFAULT_TIMEOUT, Endpoint

logger = setup_logger(__name__)


class AgentFailure(NamedTuple):
    """An agent task that did not terminate cleanly."""

    endpoint: Optional[Endpoint]
    error: str


class AgentPool:
    """The running agents of one game."""

    def __init__(self, agents: List[Agent]):
        self.agents = agents
        self._tasks: List[Tuple[Agent, asyncio.Task]] = []

    @classmethod
    async def spawn(cls, config: GameConfig, host: str = DEFAULT_HOST,
                    timeout: float = DEFAULT_TIMEOUT,
                    rng: Optional[random.Random] = None) -> "AgentPool":
        """Create and start config.num_agents agents, liars first."""
        rng = rng or random.Random()
        agents = [
            Agent.create(config.value, config.max_value, index < config.number_of_liars,
                         rng=rng, host=host, read_timeout=timeout)
            for index in range(config.num_agents)
        ]
        pool = cls(agents)
        try:
            await pool.start()
        except BindFailure:
            logger.error("Agent startup failed, stopping the agents already running")
            await pool.abort(timeout)
            raise

        logger.info(f"Launched {config.number_of_liars} liar(s) and "
                    f"{config.number_of_truthful} truthful agent(s)")
        return pool

    async def start(self):
        for agent in self.agents:
            await agent.start()
            task = asyncio.create_task(agent.serve(), name=f"agent-{agent.port}")
            self._tasks.append((agent, task))

    @property
    def endpoints(self) -> List[Endpoint]:
        return [agent.endpoint for agent, _ in self._tasks]

    async def join(self, timeout: Optional[float] = None) -> List[AgentFailure]:
        """
        Wait for every agent task to finish.

        Tasks still running after `timeout` are cancelled and reported.

        Returns:
            One AgentFailure per agent that crashed or had to be cancelled
        """
        if not self._tasks:
            return []

        tasks = [task for _, task in self._tasks]
        _, pending = await asyncio.wait(tasks, timeout=timeout)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        failures = []
        for agent, task in self._tasks:
            if task in pending:
                failures.append(AgentFailure(agent.endpoint, "did not stop in time"))
            elif task.cancelled():
                failures.append(AgentFailure(agent.endpoint, "cancelled"))
            elif task.exception() is not None:
                failures.append(AgentFailure(agent.endpoint, repr(task.exception())))
            else:
                logger.debug(f"Joined agent {agent.port}")

        logger.info(f"Joined {len(self._tasks) - len(failures)} of {len(self._tasks)} agent(s)")
        return failures

    async def abort(self, timeout: Optional[float] = None) -> List[AgentFailure]:
        """Stop every agent locally, without the network, and join them."""
        for agent in self.agents:
            agent.stop()
        return await self.join(timeout)

    def __len__(self) -> int:
        return len(self._tasks)
