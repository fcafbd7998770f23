"""
Console - The line-oriented front end of a game.

The player types a `start ...` line, then `play` or `stop` until the secret
value is found or the game is stopped.
"""

import asyncio
import random
from typing import Optional, TextIO

import click

from .config import START_USAGE, GameConfig, parse_start_line
from .coordinator import RoundController, RoundResult
from .errors import ConfigError
from .logging_config import setup_logger
from .protocol import DEFAULT_TIMEOUT
from .registry import Registry

logger = setup_logger(__name__)


def report_round(result: RoundResult):
    """Tell the player what this round proposed."""
    if result.candidate is None:
        click.echo("No new value to propose this round")
        return
    click.echo(f"You propose value {result.candidate}")
    if result.won:
        click.echo(f"You have found the correct value after {result.round_number} round(s) !")


class GameConsole:
    """Reads commands from a text stream and drives one game."""

    def __init__(self, input_stream: TextIO, registry: Registry,
                 timeout: float = DEFAULT_TIMEOUT, rng: Optional[random.Random] = None):
        self.input = input_stream
        self.registry = registry
        self.timeout = timeout
        self.rng = rng

    async def _readline(self) -> Optional[str]:
        # Blocking read in a worker thread so the agents keep serving
        line = await asyncio.to_thread(self.input.readline)
        return line if line else None

    async def read_config(self) -> Optional[GameConfig]:
        """Wait for a valid start line. Returns None on a bad line or end of input."""
        click.echo("Welcome to liarslie. To start a new game, please type")
        click.echo(START_USAGE)

        line = await self._readline()
        if line is None:
            return None
        try:
            config = parse_start_line(line)
        except ConfigError as e:
            click.echo(str(e), err=True)
            return None

        click.echo(f"max_value {config.max_value}")
        click.echo(f"value {config.value}")
        click.echo(f"num_agents {config.num_agents}")
        click.echo(f"liar_ratio : {config.liar_ratio}")
        return config

    async def game_loop(self, controller: RoundController) -> bool:
        """Handle play/stop commands. Returns True if the game was won."""
        click.echo("ready")
        while True:
            line = await self._readline()
            command = line.strip() if line is not None else "stop"

            if command == "play":
                result = await controller.play()
                report_round(result)
                if result.won:
                    return True
            elif command == "stop":
                return False
            else:
                click.echo(f"You should enter 'play' or 'stop', you entered {command}")

    async def run(self) -> int:
        """Play one full game. Returns the process exit code."""
        config = await self.read_config()
        if config is None:
            return 1

        controller = await RoundController.launch(config, self.registry, self.timeout, self.rng)
        try:
            await self.game_loop(controller)
        finally:
            failures = await controller.shutdown()
        return 1 if failures else 0


async def autoplay(config: GameConfig, registry: Registry, max_rounds: int,
                   timeout: float = DEFAULT_TIMEOUT,
                   rng: Optional[random.Random] = None) -> bool:
    """Play rounds without a player until the value is found or max_rounds is reached."""
    controller = await RoundController.launch(config, registry, timeout, rng)
    try:
        while controller.rounds_played < max_rounds:
            result = await controller.play()
            report_round(result)
            if result.won:
                return True
        logger.info(f"Gave up after {max_rounds} round(s)")
        return False
    finally:
        await controller.shutdown()
