"""Environment variable stores.

The engine never touches ``os.environ`` directly; it reads and writes
one variable at a time through an :class:`EnvironmentStore`. Absent and
empty values are treated the same on read.

Example:
    Decoding from an isolated mapping instead of the process environment::

        from envio import Engine
        from envio.store import MappingEnvironment

        engine = Engine(store=MappingEnvironment({"PORT": "8080"}))
        engine.get(settings)
"""

import os
from abc import ABC, abstractmethod
from typing import MutableMapping, Optional

from envio.exceptions import StoreException


ENCODING = "utf-8"
ERRORS = "surrogateescape"


def to_bytes(value: str) -> bytes:
    """Convert a stored string back to the bytes it was written from."""
    return value.encode(ENCODING, ERRORS)


def from_bytes(value: bytes) -> str:
    """Convert raw bytes to the string form kept in the environment."""
    return bytes(value).decode(ENCODING, ERRORS)


class EnvironmentStore(ABC):
    """Interface for a flat string key-value store."""

    @abstractmethod
    def read(self, name: str) -> Optional[str]:
        """Read a variable.

        Args:
            name: The variable name.

        Returns:
            The value, or None if the variable is not set.
        """
        pass

    @abstractmethod
    def write(self, name: str, value: str) -> None:
        """Write a variable, replacing any existing value.

        Args:
            name: The variable name.
            value: The value to store.

        Raises:
            StoreException: If the store rejects the write.
        """
        pass


class MappingEnvironment(EnvironmentStore):
    """Store backed by a plain mutable mapping."""

    def __init__(self, data: MutableMapping[str, str] = None):
        self._data = data if data is not None else {}

    @property
    def data(self) -> MutableMapping[str, str]:
        """Get the underlying mapping."""
        return self._data

    def read(self, name: str) -> Optional[str]:
        return self._data.get(name)

    def write(self, name: str, value: str) -> None:
        self._data[name] = value

    def __repr__(self) -> str:
        return f"MappingEnvironment({self._data!r})"


class OsEnvironment(MappingEnvironment):
    """Store backed by the process environment."""

    def __init__(self):
        super().__init__(os.environ)

    def write(self, name: str, value: str) -> None:
        try:
            os.environ[name] = value
        except (ValueError, OSError) as e:
            raise StoreException(name, cause=e)

    def __repr__(self) -> str:
        return "OsEnvironment()"
