"""
Startup parameters for a game and the `start` line that carries them.

Example:
    start --value 1 --max-value 3 --num-agents 10 --liar-ratio 0.5
"""

import shlex
from dataclasses import dataclass

import click

from .errors import ConfigError

START_USAGE = "start --value <v> --max-value <max> --num-agents <number> --liar-ratio <ratio>"

MAX_VALUE_LIMIT = 65535
MAX_AGENTS = 1000


@dataclass(frozen=True)
class GameConfig:
    """Validated parameters of one game."""

    value: int
    max_value: int
    num_agents: int
    liar_ratio: float

    def __post_init__(self):
        if not 1 <= self.value <= MAX_VALUE_LIMIT:
            raise ConfigError(f"value should be in [1; {MAX_VALUE_LIMIT}], got {self.value}")
        if not 2 <= self.max_value <= MAX_VALUE_LIMIT:
            raise ConfigError(f"max-value should be in [2; {MAX_VALUE_LIMIT}], got {self.max_value}")
        if self.value > self.max_value:
            raise ConfigError(f"value {self.value} should not exceed max-value {self.max_value}")
        if not 2 <= self.num_agents <= MAX_AGENTS:
            raise ConfigError(f"num-agents should be in [2; {MAX_AGENTS}], got {self.num_agents}")
        liars = self.number_of_liars
        if not 0.0 <= self.liar_ratio < 1.0 or liars < 1 or liars == self.num_agents:
            raise ConfigError(
                f"liar-ratio should be in [0, 1[ with at least one liar and one honest agent. "
                f"value : {self.liar_ratio}, number_of_liars {liars}"
            )

    @property
    def number_of_liars(self) -> int:
        return int(self.liar_ratio * self.num_agents)

    @property
    def number_of_truthful(self) -> int:
        return self.num_agents - self.number_of_liars


def game_options(func):
    """The four parameters of a game, shared by the start line and the CLI."""
    func = click.option('--liar-ratio', type=click.FloatRange(0.0, 1.0, max_open=True), required=True,
                        help='Ratio of liars, float in [0 ; 1[. There must be at least one liar')(func)
    func = click.option('--num-agents', type=click.IntRange(2, MAX_AGENTS), required=True,
                        help='Number of agents, integer in [2 ; 1000]')(func)
    func = click.option('--max-value', type=click.IntRange(2, MAX_VALUE_LIMIT), required=True,
                        help='Maximum value, integer in [2 ; 65535]')(func)
    func = click.option('--value', type=click.IntRange(1, MAX_VALUE_LIMIT), required=True,
                        help='True value, integer in [1 ; 65535]')(func)
    return func


@click.command(name='start')
@game_options
def start_command(value, max_value, num_agents, liar_ratio):
    """Start a new game."""
    return GameConfig(value, max_value, num_agents, liar_ratio)


def parse_start_line(line: str) -> GameConfig:
    """Parse a console `start ...` line into a validated GameConfig."""
    try:
        words = shlex.split(line)
    except ValueError as e:
        raise ConfigError(f"Cannot parse '{line.strip()}': {e}") from e

    if not words or words[0] != 'start':
        raise ConfigError(f"Expected: {START_USAGE}")

    try:
        config = start_command.main(words[1:], prog_name='start', standalone_mode=False)
    except click.ClickException as e:
        raise ConfigError(e.format_message()) from e

    if not isinstance(config, GameConfig):
        # --help was requested
        raise ConfigError(f"Usage: {START_USAGE}")
    return config
