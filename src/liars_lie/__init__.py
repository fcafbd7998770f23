"""
Liars Lie - A distributed liar detection guessing game.

This package runs a swarm of small TCP agents that each hold one integer:
- truthful agents report the secret value
- liar agents report a fixed, different value

A coordinator queries every agent each round and infers the secret value
from the known ratio of liars.
"""

__version__ = "1.0.0"
