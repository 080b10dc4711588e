"""Decode engine: environment variables into records."""

from typing import Any, Tuple

from envio.exceptions import (
    IndexOutOfRangeException,
    InvalidTargetException,
    MissingVariableException,
    ParseException,
    PointerToUnexportedException,
)
from envio.logging import get_logger
from envio.serialization.service import ROOT_FIELD, CodecService, FieldDescriptor
from envio.serialization.types import TypeInfo, is_mutable_record, type_name
from envio.store import EnvironmentStore


_logger = get_logger("getter")


class DecodeState:
    """Per-call state of one decode walk.

    A state is created for every :meth:`~envio.engine.Engine.get` call and
    discarded afterwards, so concurrent calls never share it.

    Args:
        service: Source of cached routines and field descriptors.
        store: Where variables are read from.
        separator: Container element separator.
    """

    def __init__(self, service: CodecService, store: EnvironmentStore, separator: str):
        self._service = service
        self._store = store
        self.separator = separator
        self.record = ""
        self.field = ROOT_FIELD
        # Non-empty variables read so far.
        self.reads = 0

    def run(self, target: Any) -> None:
        """Decode all fields of ``target`` in place.

        Raises:
            InvalidTargetException: If target is not a mutable record.
        """
        if not is_mutable_record(target):
            raise InvalidTargetException(target)
        self.decode_value(type(target), target)

    def read(self) -> str:
        """Read the current field's variable.

        Returns:
            The value, or an empty string when unset.

        Raises:
            MissingVariableException: If the field is mandatory and the
                variable is unset or empty.
        """
        value = self._store.read(self.field.name) or ""
        if self.field.mandatory and not value:
            _logger.debug("Mandatory variable $%s is missing", self.field.name)
            raise MissingVariableException(self.field.name)
        if value:
            self.reads += 1
        return value

    def parse_error(self, info: TypeInfo, cause: Exception) -> ParseException:
        _logger.debug("Cannot parse $%s as %s: %s", self.field.name, info.name, cause)
        return ParseException(self.record, self.field.attr, self.field.name, info.name, cause)

    def index_error(self, info: TypeInfo, count: int) -> IndexOutOfRangeException:
        cause = IndexError(f"index out of range: {count} elements for length {info.length}")
        return IndexOutOfRangeException(
            self.record, self.field.attr, self.field.name, info.name, cause
        )

    def decode_value(self, tp: Any, current: Any) -> Any:
        """Decode the current field as type ``tp``."""
        return self._service.routines_for(tp).decode(self, current)

    def decode_record(self, record: Any) -> None:
        """Decode every participating field of ``record`` in place."""
        self._decode_fields(self._service.fields_for(type(record)), record)

    def _decode_fields(self, fields: Tuple[FieldDescriptor, ...], record: Any) -> None:
        outer = self.record, self.field
        self.record = type(record).__name__

        for field in fields:
            self.field = field
            current = getattr(record, field.attr)

            if field.is_embedded:
                if current is None:
                    raise PointerToUnexportedException(type_name(field.record))
                if not is_mutable_record(current):
                    raise InvalidTargetException(current)
                self._decode_fields(field.embedded, current)
                continue

            setattr(record, field.attr, field.routines.decode(self, current))

        self.record, self.field = outer
