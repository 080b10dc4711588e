"""Serialization API interfaces.

This module defines the two capability interfaces a field type may
implement to own its environment representation, and the codec contract
used by the built-in dispatch.

A type opts in simply by defining the method; subclassing the ABC is
optional because capability checks go through ``__subclasshook__``.

Example:
    A log level stored as a word instead of a number::

        class Level:
            NAMES = {"debug": 10, "info": 20}

            def __init__(self, value: int = 20):
                self.value = value

            def decode_env(self, raw: bytes) -> None:
                self.value = self.NAMES[raw.decode()]

            def encode_env(self) -> bytes:
                for name, value in self.NAMES.items():
                    if value == self.value:
                        return name.encode()
                return b"info"
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable

from envio.serialization.types import TypeKind

if TYPE_CHECKING:
    from envio.serialization.getter import DecodeState
    from envio.serialization.setter import EncodeState


def _has_method(cls: type, name: str) -> Any:
    for base in cls.__mro__:
        if name in base.__dict__:
            if base.__dict__[name] is None:
                return NotImplemented
            return True
    return NotImplemented


class EnvDecoder(ABC):
    """Interface for types that decode themselves from a variable.

    The engine creates a fresh instance with a no-argument call, passes
    the raw variable bytes (empty when the variable is unset and not
    mandatory), then assigns the instance to the field.
    """

    @abstractmethod
    def decode_env(self, raw: bytes) -> None:
        """Populate this instance from the raw variable value.

        Args:
            raw: The exact bytes read from the environment.

        Raises:
            Exception: Any exception aborts the decode and propagates
                unchanged to the caller.
        """
        pass

    @classmethod
    def __subclasshook__(cls, subclass: type) -> Any:
        if cls is EnvDecoder:
            return _has_method(subclass, "decode_env")
        return NotImplemented


class EnvEncoder(ABC):
    """Interface for types that encode themselves into a variable."""

    @abstractmethod
    def encode_env(self) -> bytes:
        """Produce the raw variable value for this instance.

        Returns:
            The bytes written verbatim to the environment.

        Raises:
            Exception: Any exception aborts the encode and propagates
                unchanged to the caller.
        """
        pass

    @classmethod
    def __subclasshook__(cls, subclass: type) -> Any:
        if cls is EnvEncoder:
            return _has_method(subclass, "encode_env")
        return NotImplemented


class Codec(ABC):
    """Encode/decode behaviour for one structural kind.

    Codecs are stateless apart from the type information they are built
    with; all per-call state travels in the state argument.
    """

    @abstractmethod
    def encode(self, state: "EncodeState", value: Any) -> None:
        """Write ``value`` under the current field's external name.

        Args:
            state: The per-call encode state.
            value: The current field value.
        """
        pass

    @abstractmethod
    def decode(self, state: "DecodeState", current: Any) -> Any:
        """Compute the new field value.

        Args:
            state: The per-call decode state.
            current: The current field value.

        Returns:
            The value to assign; ``current`` itself when nothing changes.
        """
        pass


EncodeRoutine = Callable[["EncodeState", Any], None]
DecodeRoutine = Callable[["DecodeState", Any], Any]


@dataclass(frozen=True)
class Routines:
    """Cached encode/decode pair for one type."""

    kind: TypeKind
    encode: EncodeRoutine
    decode: DecodeRoutine
