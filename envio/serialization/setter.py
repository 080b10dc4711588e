"""Encode engine: records into environment variables."""

import dataclasses
from typing import Any, Tuple

from envio.exceptions import FormatException, NilValueException, UnsupportedTypeException
from envio.serialization.service import ROOT_FIELD, CodecService, FieldDescriptor
from envio.serialization.types import TypeInfo, is_zero_value, new_instance
from envio.store import EnvironmentStore


class EncodeState:
    """Per-call state of one encode walk.

    Args:
        service: Source of cached routines and field descriptors.
        store: Where variables are written to.
        separator: Container element separator.
    """

    def __init__(self, service: CodecService, store: EnvironmentStore, separator: str):
        self._service = service
        self._store = store
        self.separator = separator
        self.record = ""
        self.field = ROOT_FIELD

    def run(self, source: Any) -> None:
        """Encode all fields of ``source``.

        Raises:
            NilValueException: If source is None.
            UnsupportedTypeException: If source is not a record instance.
        """
        if source is None:
            raise NilValueException("env: cannot encode a None record")
        if isinstance(source, type) or not dataclasses.is_dataclass(source):
            raise UnsupportedTypeException(type(source).__name__, "only records can be encoded")
        self.encode_value(type(source), source)

    def write(self, value: str) -> None:
        """Write ``value`` under the current field's external name."""
        self._store.write(self.field.name, value)

    def format_error(self, info: TypeInfo, cause: Exception) -> FormatException:
        return FormatException(self.record, self.field.attr, self.field.name, info.name, cause)

    def encode_value(self, tp: Any, value: Any) -> None:
        """Encode ``value`` for the current field as type ``tp``."""
        self._service.routines_for(tp).encode(self, value)

    def encode_record(self, record: Any) -> None:
        """Encode every participating field of ``record``."""
        self._encode_fields(self._service.fields_for(type(record)), record)

    def _encode_fields(self, fields: Tuple[FieldDescriptor, ...], record: Any) -> None:
        outer = self.record, self.field
        self.record = type(record).__name__

        for field in fields:
            self.field = field
            value = getattr(record, field.attr)

            # A zero mandatory value must not erase a variable set elsewhere.
            if field.mandatory and is_zero_value(field.type, value):
                continue

            if field.is_embedded:
                if value is None:
                    value = new_instance(field.record)
                self._encode_fields(field.embedded, value)
                continue

            field.routines.encode(self, value)

        self.record, self.field = outer
