"""
Round Controller - Drives the rounds of a game and shuts the agents down.

Each round reads the registry, queries every agent, picks a value and asks
the oracle whether it is the secret. The controller never holds the secret
value itself.
"""

import random
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Set

from .aggregator import Tally, query_all
from .config import GameConfig
from .errors import ConnectFailure, NoCandidateError, RegistryError
from .logging_config import setup_logger
from .pool import AgentFailure, AgentPool
from .protocol import DEFAULT_TIMEOUT, STOP, send_command
from .registry import Registry
from .selector import select_guess

logger = setup_logger(__name__)


class GameStatus(Enum):
    AWAITING_COMMAND = "awaiting_command"
    ROUND_IN_PROGRESS = "round_in_progress"
    GAME_WON = "game_won"
    STOPPED = "stopped"


class TargetOracle:
    """Answers whether a proposed value is the secret, without revealing it."""

    def __init__(self, value: int):
        self._value = value

    def check(self, candidate: int) -> bool:
        return candidate == self._value


@dataclass
class GameContext:
    """Everything a round needs, passed explicitly instead of kept in globals."""

    registry: Registry
    liar_ratio: float
    timeout: float = DEFAULT_TIMEOUT
    already_tried: Set[int] = field(default_factory=set)
    round_number: int = 1


@dataclass
class RoundResult:
    """Outcome of one play."""

    round_number: int
    tally: Tally
    candidate: Optional[int] = None
    won: bool = False


class RoundController:
    """Runs the game's state machine from the first play to shutdown."""

    def __init__(self, context: GameContext, oracle: TargetOracle,
                 pool: Optional[AgentPool] = None):
        self.context = context
        self.oracle = oracle
        self.pool = pool
        self.status = GameStatus.AWAITING_COMMAND
        self.failures: List[AgentFailure] = []

    @classmethod
    async def launch(cls, config: GameConfig, registry: Registry,
                     timeout: float = DEFAULT_TIMEOUT,
                     rng: Optional[random.Random] = None) -> "RoundController":
        """Spawn the agents of a game, publish them and return a ready controller."""
        pool = await AgentPool.spawn(config, host=registry.host, timeout=timeout, rng=rng)
        try:
            registry.publish(pool.endpoints)
        except RegistryError:
            await pool.abort(timeout)
            raise

        context = GameContext(registry=registry, liar_ratio=config.liar_ratio, timeout=timeout)
        return cls(context, TargetOracle(config.value), pool)

    @property
    def rounds_played(self) -> int:
        return self.context.round_number - 1

    @property
    def finished(self) -> bool:
        return self.status in (GameStatus.GAME_WON, GameStatus.STOPPED)

    async def play(self) -> RoundResult:
        """Play one round: query all agents, propose a value, check it."""
        if self.status != GameStatus.AWAITING_COMMAND:
            raise RuntimeError(f"Cannot play a round while the game is {self.status.value}")

        self.status = GameStatus.ROUND_IN_PROGRESS
        ctx = self.context
        result = RoundResult(round_number=ctx.round_number, tally=Tally())
        logger.info(f"Round {result.round_number} started")

        try:
            endpoints = ctx.registry.load()
            result.tally = await query_all(endpoints, ctx.timeout)
        except BaseException:
            self.status = GameStatus.AWAITING_COMMAND
            raise

        try:
            result.candidate = select_guess(result.tally, result.tally.total,
                                            ctx.liar_ratio, ctx.already_tried)
        except NoCandidateError as e:
            logger.warning(f"Round {result.round_number}: {e}")
        else:
            ctx.already_tried.add(result.candidate)
            result.won = self.oracle.check(result.candidate)
            logger.info(f"Round {result.round_number}: proposed {result.candidate}, "
                        f"{'correct' if result.won else 'wrong'}")

        ctx.round_number += 1
        self.status = GameStatus.GAME_WON if result.won else GameStatus.AWAITING_COMMAND
        return result

    async def shutdown(self) -> List[AgentFailure]:
        """Send stop to every agent, join them and remove the registry."""
        if self.status == GameStatus.STOPPED:
            return self.failures

        ctx = self.context
        try:
            endpoints = ctx.registry.load()
        except RegistryError as e:
            logger.error(f"Cannot read registry during shutdown: {e}")
            endpoints = self.pool.endpoints if self.pool else []

        logger.info(f"Stopping {len(endpoints)} agent(s)")
        for endpoint in endpoints:
            try:
                await send_command(endpoint, STOP, ctx.timeout)
            except ConnectFailure as e:
                logger.warning(str(e))

        if self.pool is not None:
            self.failures = await self.pool.join(timeout=ctx.timeout)
            for failure in self.failures:
                logger.error(f"Agent {failure.endpoint}: {failure.error}")

        if ctx.registry.exists():
            ctx.registry.clear()
        self.status = GameStatus.STOPPED
        return self.failures
