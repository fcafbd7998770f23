"""
Registry - Hands the agents' endpoints from startup to every round.

The registry is a plain text file with one decimal port per line. It is
written once after all agents are running, read at the start of every round
and removed after every agent has been stopped and joined.
"""

import os
from pathlib import Path
from typing import Iterable, List, Union

from .errors import RegistryError
from .logging_config import setup_logger
from .protocol import DEFAULT_HOST, MAX_WIRE_VALUE, Endpoint

logger = setup_logger(__name__)

DEFAULT_REGISTRY_PATH = "agent.config"


class Registry:
    """File-backed list of agent endpoints on a single host."""

    def __init__(self, path: Union[str, os.PathLike] = DEFAULT_REGISTRY_PATH,
                 host: str = DEFAULT_HOST):
        self.path = Path(path)
        self.host = host

    def publish(self, endpoints: Iterable[Endpoint]):
        """Write the ports of all agents, one per line."""
        ports = [endpoint.port for endpoint in endpoints]
        try:
            with self.path.open('w', encoding='utf-8') as f:
                for port in ports:
                    f.write(f"{port}\n")
        except OSError as e:
            raise RegistryError(f"Unable to write {self.path}: {e}") from e
        logger.info(f"Published {len(ports)} agent(s) to {self.path}")

    def load(self) -> List[Endpoint]:
        """Read back every endpoint. Any unreadable content is fatal."""
        try:
            text = self.path.read_text(encoding='utf-8')
        except OSError as e:
            raise RegistryError(f"Unable to read {self.path}: {e}") from e

        endpoints = []
        for lineno, line in enumerate(text.splitlines(), start=1):
            line = line.strip()
            if not line:
                continue
            try:
                port = int(line)
            except ValueError as e:
                raise RegistryError(f"{self.path}:{lineno}: not a port number: {line!r}") from e
            if not 1 <= port <= MAX_WIRE_VALUE:
                raise RegistryError(f"{self.path}:{lineno}: port out of range: {port}")
            endpoints.append(Endpoint(self.host, port))
        return endpoints

    def clear(self):
        """Remove the registry file."""
        try:
            self.path.unlink()
        except FileNotFoundError:
            logger.warning(f"Registry {self.path} was already removed")
            return
        logger.info(f"Registry {self.path} successfully deleted")

    def exists(self) -> bool:
        return self.path.exists()
