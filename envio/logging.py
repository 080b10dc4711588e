"""Logging for envio.

envio is a library, so it only ever emits records: everything goes to
loggers below ``envio`` (``envio.engine``, ``envio.service``,
``envio.getter``) and a :class:`logging.NullHandler` keeps the records
quiet until the application opts in. All records are DEBUG; they trace
cache derivations and the variable behind each decode failure.

Example:
    >>> import logging
    >>> from envio.logging import configure_logging
    >>> configure_logging(level=logging.DEBUG)
    >>> get_env(settings)  # logs derived fields and failing variables
"""

import logging
from typing import Optional


ENVIO_ROOT_LOGGER = "envio"
DEFAULT_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"

logging.getLogger(ENVIO_ROOT_LOGGER).addHandler(logging.NullHandler())


class EnvioLoggerFactory:
    """Hands out component loggers and owns the optional envio handler.

    :meth:`configure` installs at most one handler; calling it again
    replaces that handler instead of stacking another one.
    """

    _handler: Optional[logging.Handler] = None

    @classmethod
    def get_logger(cls, name: str = "") -> logging.Logger:
        """Get the logger of an envio component, or the root envio logger."""
        return logging.getLogger(f"{ENVIO_ROOT_LOGGER}.{name}" if name else ENVIO_ROOT_LOGGER)

    @classmethod
    def configure(
        cls,
        level: int = logging.INFO,
        format_string: str = DEFAULT_FORMAT,
        handler: Optional[logging.Handler] = None,
    ) -> logging.Logger:
        """Route envio records to a handler.

        Args:
            level: Threshold for the root envio logger and the handler.
            format_string: Format applied to the handler.
            handler: Destination; stderr when omitted.

        Returns:
            The root envio logger.
        """
        root = cls.get_logger()
        root.setLevel(level)

        if cls._handler is not None:
            root.removeHandler(cls._handler)
        cls._handler = handler or logging.StreamHandler()
        cls._handler.setLevel(level)
        cls._handler.setFormatter(logging.Formatter(format_string))
        root.addHandler(cls._handler)
        return root

    @classmethod
    def set_level(cls, level: int, component: str = "") -> None:
        cls.get_logger(component).setLevel(level)

    @classmethod
    def disable(cls) -> None:
        """Drop every record logged directly on the root envio logger."""
        cls.get_logger().disabled = True

    @classmethod
    def enable(cls) -> None:
        cls.get_logger().disabled = False

    @classmethod
    def is_configured(cls) -> bool:
        """Check whether :meth:`configure` installed a handler."""
        return cls._handler is not None


def get_logger(name: str = "") -> logging.Logger:
    """Get the logger of an envio component (``"engine"``, ``"service"``)."""
    return EnvioLoggerFactory.get_logger(name)


def configure_logging(
    level: int = logging.INFO,
    format_string: str = DEFAULT_FORMAT,
    handler: Optional[logging.Handler] = None,
) -> logging.Logger:
    """Route envio records to ``handler`` (stderr by default).

    See :meth:`EnvioLoggerFactory.configure`.
    """
    return EnvioLoggerFactory.configure(level, format_string, handler)


def set_level(level: int, component: str = "") -> None:
    """Set the threshold of one component, or of all of envio."""
    EnvioLoggerFactory.set_level(level, component)
