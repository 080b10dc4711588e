"""envio exceptions.

This module defines the exception hierarchy for envio.
All exceptions inherit from :class:`EnvioException`.

Example:
    Handling envio exceptions::

        from envio import get_env
        from envio.exceptions import (
            EnvioException,
            MissingVariableException,
            ParseException,
        )

        try:
            get_env(settings)
        except MissingVariableException as e:
            print(f"Set ${e.name} before starting")
        except ParseException as e:
            print(f"Bad value for {e.name}: {e.cause}")
        except EnvioException as e:
            print(f"envio error: {e}")
"""

from typing import Any, Optional


PREFIX = "env"


class EnvioException(Exception):
    """Base class for all envio exceptions.

    Args:
        message: The error message describing the exception.
        cause: The underlying exception that caused this error, if any.

    Attributes:
        cause: The underlying cause of this exception, if any.
    """

    def __init__(self, message: str = "", cause: Exception = None):
        super().__init__(message)
        self.cause = cause


class ConfigurationException(EnvioException):
    """Raised when the engine configuration is invalid.

    Example:
        - A separator longer than one character
        - A separator that collides with number formatting
        - An unreadable or malformed YAML configuration file
    """
    pass


class InvalidTargetException(EnvioException):
    """Raised when a decode target cannot receive values.

    Decoding assigns into an existing record, so the target must be a
    mutable dataclass instance. Classes, ``None``, scalars and frozen
    dataclass instances are rejected before any variable is read.
    """

    def __init__(self, target: Any):
        super().__init__(
            f"{PREFIX}: the input value is not a mutable record: {type(target).__name__}"
        )
        self.target = target


class MissingVariableException(EnvioException):
    """Raised when a mandatory variable is absent or empty.

    Args:
        name: The external variable name that was required.

    Example:
        >>> try:
        ...     get_env(settings)
        ... except MissingVariableException as e:
        ...     print(e.name)
        DATABASE_URL
    """

    def __init__(self, name: str):
        super().__init__(f"{PREFIX}: the required variable ${name} is missing")
        self._name = name

    @property
    def name(self) -> str:
        """Get the external name of the missing variable."""
        return self._name


class ParseException(EnvioException):
    """Raised when a variable cannot be converted to its field type.

    Args:
        record: Name of the record type that owns the field.
        field: Attribute name of the field.
        name: External variable name.
        type_name: Printable name of the declared field type.
        cause: The underlying conversion failure.
    """

    def __init__(
        self,
        record: str,
        field: str,
        name: str,
        type_name: str,
        cause: Exception,
    ):
        super().__init__(
            f"{PREFIX}: cannot get data into field {record}.{field} (${name}) "
            f"of type {type_name}: {cause}",
            cause=cause,
        )
        self.record = record
        self.field = field
        self.name = name
        self.type_name = type_name


class IndexOutOfRangeException(ParseException):
    """Raised when a fixed-size array receives more elements than it holds."""
    pass


class FormatException(EnvioException):
    """Raised when a field value has no representation at its declared width.

    Example:
        A ``Float32`` field holding ``1e39``.
    """

    def __init__(
        self,
        record: str,
        field: str,
        name: str,
        type_name: str,
        cause: Exception,
    ):
        super().__init__(
            f"{PREFIX}: cannot set data from field {record}.{field} (${name}) "
            f"of type {type_name}: {cause}",
            cause=cause,
        )
        self.record = record
        self.field = field
        self.name = name
        self.type_name = type_name


class UnsupportedTypeException(EnvioException):
    """Raised when a type has no codec and no converter override.

    Args:
        type_name: Printable name of the unsupported type.
        reason: Optional detail appended to the message.
    """

    def __init__(self, type_name: str, reason: str = "", cause: Exception = None):
        message = f"{PREFIX}: unsupported type: {type_name}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message, cause=cause)
        self.type_name = type_name


class NilValueException(EnvioException):
    """Raised when ``None`` is found where a concrete value is required.

    Interface fields (annotated ``Any``) dispatch on their runtime value,
    so they must hold something before a record is encoded or decoded.
    """

    def __init__(self, message: str = f"{PREFIX}: nil interface value"):
        super().__init__(message)


class PointerToUnexportedException(EnvioException):
    """Raised when an embedded record is ``None`` during decode.

    Embedded records are never allocated implicitly while decoding; the
    caller has to initialize them first.
    """

    def __init__(self, type_name: str):
        super().__init__(
            f"{PREFIX}: embedded record is not initialized: {type_name}"
        )
        self.type_name = type_name


class StoreException(EnvioException):
    """Raised when the environment store rejects a write."""

    def __init__(self, name: str, cause: Optional[Exception] = None):
        super().__init__(f"{PREFIX}: cannot write variable ${name}: {cause}", cause=cause)
        self.name = name
