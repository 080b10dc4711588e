"""Engine facade and module-level entry points.

Example:
    Reading settings from the process environment::

        from dataclasses import dataclass
        from envio import env_field, get_env

        @dataclass
        class Settings:
            url: str = env_field("DATABASE_URL", mandatory=True)
            debug: bool = env_field("DEBUG", default=False)

        settings = get_env(Settings())

    Using an isolated engine::

        from envio import Engine, EngineConfig
        from envio.store import MappingEnvironment

        engine = Engine(EngineConfig(separator=","), MappingEnvironment())
        engine.set(settings)
"""

import threading
from typing import Any, Optional, TypeVar

from envio.config import EngineConfig
from envio.logging import get_logger
from envio.serialization.getter import DecodeState
from envio.serialization.service import CodecService
from envio.serialization.setter import EncodeState
from envio.store import EnvironmentStore, OsEnvironment


T = TypeVar("T")

_logger = get_logger("engine")


class Engine:
    """Maps record fields to and from environment variables.

    Each engine owns its derivation caches, so engines built for tests
    never share state with the default engine.

    Args:
        config: Engine configuration. The tag name is read once, when the
            engine is created.
        store: Variable store; the process environment by default.
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        store: Optional[EnvironmentStore] = None,
    ):
        self._config = config or EngineConfig()
        self._store = store if store is not None else OsEnvironment()
        self._service = CodecService(self._config.tag_name)

    @property
    def config(self) -> EngineConfig:
        return self._config

    @property
    def store(self) -> EnvironmentStore:
        return self._store

    @property
    def service(self) -> CodecService:
        return self._service

    def get(self, target: T) -> T:
        """Populate ``target`` from the environment.

        Args:
            target: A mutable dataclass instance, updated in place.

        Returns:
            The same target.

        Raises:
            InvalidTargetException: If target is not a mutable record.
            MissingVariableException: If a mandatory variable is unset.
            ParseException: If a variable cannot be converted.
            EnvioException: For the other failures; fields processed
                before the failure keep their new values.
        """
        _logger.debug("Decoding %s", type(target).__name__)
        DecodeState(self._service, self._store, self._config.separator).run(target)
        return target

    def set(self, source: Any) -> None:
        """Write the fields of ``source`` to the environment.

        Mandatory fields holding their zero value are not written.

        Args:
            source: A dataclass instance.

        Raises:
            EnvioException: On the first failure; variables written before
                it stay written.
        """
        _logger.debug("Encoding %s", type(source).__name__)
        EncodeState(self._service, self._store, self._config.separator).run(source)

    def __repr__(self) -> str:
        return f"Engine(config={self._config!r}, store={self._store!r})"


_default_engine: Optional[Engine] = None
_default_lock = threading.Lock()


def default_engine() -> Engine:
    """Get the process-wide engine used by :func:`get_env` and :func:`set_env`."""
    global _default_engine
    if _default_engine is None:
        with _default_lock:
            if _default_engine is None:
                _default_engine = Engine()
    return _default_engine


def get_env(target: T) -> T:
    """Populate ``target`` from the process environment."""
    return default_engine().get(target)


def set_env(source: Any) -> None:
    """Write the fields of ``source`` to the process environment."""
    default_engine().set(source)
