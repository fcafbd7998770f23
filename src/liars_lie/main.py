#!/usr/bin/env python3
"""
Main entry point for the Liars Lie game.

This module provides the CLI interface for playing the game.
"""

import asyncio
import random
import sys

import click

from . import __version__
from .config import game_options
from .logging_config import set_level
from .protocol import DEFAULT_HOST, DEFAULT_TIMEOUT
from .registry import DEFAULT_REGISTRY_PATH, Registry


def runtime_options(func):
    """Options shared by every command that runs agents."""
    func = click.option('--timeout', default=DEFAULT_TIMEOUT, envvar='LIARS_LIE_TIMEOUT',
                        show_default=True, type=click.FloatRange(min=0.0, min_open=True),
                        help='Seconds allowed for each connect, read and agent join')(func)
    func = click.option('--host', default=DEFAULT_HOST, envvar='LIARS_LIE_HOST', show_default=True,
                        help='Address the agents listen on')(func)
    func = click.option('--registry', 'registry_path', default=DEFAULT_REGISTRY_PATH,
                        envvar='LIARS_LIE_REGISTRY', show_default=True,
                        type=click.Path(dir_okay=False),
                        help='File listing the agent ports')(func)
    return func


@click.group()
@click.version_option(version=__version__)
@click.option('--log-level', default='INFO', envvar='LOG_LEVEL',
              type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR'], case_sensitive=False),
              help='Set logging level')
def cli(log_level):
    """ Liars Lie - Find the secret value held by a crowd of agents, some of whom lie.

    Every round the coordinator asks each agent for its value and proposes the
    value whose frequency best matches the known share of truthful agents.
    """
    set_level(log_level)


@cli.command()
@runtime_options
@click.pass_context
def console(ctx, registry_path, host, timeout):
    """ Play interactively: type a start line, then 'play' or 'stop'."""
    from .console import GameConsole
    from .errors import LiarsLieError

    game_console = GameConsole(sys.stdin, Registry(registry_path, host), timeout)
    try:
        code = asyncio.run(game_console.run())
    except LiarsLieError as e:
        click.echo(f"Error: {e}", err=True)
        code = 1
    except KeyboardInterrupt:
        click.echo("Game stopped by user.", err=True)
        code = 130
    ctx.exit(code)


@cli.command()
@game_options
@click.option('--max-rounds', default=100, show_default=True, type=click.IntRange(min=1),
              help='Rounds to play before giving up')
@click.option('--seed', type=int, default=None, help='Seed for the liars\' values')
@runtime_options
@click.pass_context
def auto(ctx, value, max_value, num_agents, liar_ratio, max_rounds, seed,
         registry_path, host, timeout):
    """ Play rounds automatically until the value is found."""
    from .config import GameConfig
    from .console import autoplay
    from .errors import LiarsLieError

    rng = random.Random(seed) if seed is not None else None
    try:
        config = GameConfig(value, max_value, num_agents, liar_ratio)
        won = asyncio.run(autoplay(config, Registry(registry_path, host), max_rounds, timeout, rng))
    except LiarsLieError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)
    ctx.exit(0 if won else 2)


if __name__ == '__main__':
    cli()
