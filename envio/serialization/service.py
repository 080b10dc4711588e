"""Codec service: type dispatch and field derivation with caching."""

import dataclasses
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from envio.config import DEFAULT_TAG_NAME
from envio.logging import get_logger
from envio.serialization.api import EnvDecoder, EnvEncoder, Routines
from envio.serialization.builtin import ConverterCodec, codec_for
from envio.serialization.tags import is_embedded, parse_tag
from envio.serialization.types import TypeKind, describe, record_hints


_logger = get_logger("service")


@dataclass(frozen=True)
class FieldDescriptor:
    """Describes one participating field of a record type.

    A descriptor is either a leaf, with ``routines`` set, or an embedded
    pivot, with ``embedded`` holding the nested descriptors.

    Attributes:
        index: Position among the record's dataclass fields.
        attr: Attribute name on the record.
        name: External variable name.
        type: Resolved annotation.
        mandatory: Whether the variable is required.
        raw: Whether byte sequences are stored verbatim.
        routines: Encode/decode pair for leaves.
        embedded: Nested descriptors for embedded records.
        record: The embedded record class.
        pointer: Whether the embedded record is ``Optional``.
    """

    index: int
    attr: str
    name: str
    type: Any = None
    mandatory: bool = False
    raw: bool = False
    routines: Optional[Routines] = None
    embedded: Optional[Tuple["FieldDescriptor", ...]] = None
    record: Optional[type] = None
    pointer: bool = False

    @property
    def is_embedded(self) -> bool:
        return self.embedded is not None


ROOT_FIELD = FieldDescriptor(index=-1, attr="", name="")


def _is_record_type(tp: Any) -> bool:
    return isinstance(tp, type) and dataclasses.is_dataclass(tp)


class CodecService:
    """Derives and caches routine pairs and field descriptors.

    Both caches are append-only and live as long as the service. Entries
    are committed with ``dict.setdefault``: when two threads derive the
    same entry at once, the first commit wins and both get that entry.

    Args:
        tag_name: Field metadata key holding the tag string.

    Example:
        >>> service = CodecService()
        >>> service.routines_for(int).kind
        <TypeKind.INT: 'int'>
    """

    def __init__(self, tag_name: str = DEFAULT_TAG_NAME):
        self._tag_name = tag_name
        self._routines: Dict[Any, Routines] = {}
        self._fields: Dict[type, Tuple[FieldDescriptor, ...]] = {}

    @property
    def tag_name(self) -> str:
        return self._tag_name

    def routines_for(self, tp: Any) -> Routines:
        """Get the routine pair for a type, deriving it on first use.

        Args:
            tp: A type or typing annotation.

        Returns:
            The cached routine pair; the same object on every call.
        """
        try:
            routines = self._routines.get(tp)
        except TypeError:
            # Unhashable annotation metadata.
            return self._derive_routines(tp)
        if routines is None:
            routines = self._routines.setdefault(tp, self._derive_routines(tp))
        return routines

    def fields_for(self, record: type) -> Tuple[FieldDescriptor, ...]:
        """Get the participating fields of a record type.

        Args:
            record: A dataclass type.

        Returns:
            The cached descriptors in declaration order. Non-record types
            have no fields.
        """
        fields = self._fields.get(record)
        if fields is None:
            fields = self._fields.setdefault(record, self._derive_fields(record))
        return fields

    def _derive_routines(self, tp: Any) -> Routines:
        info = describe(tp)
        codec = codec_for(info)
        encode, decode = codec.encode, codec.decode

        overridden = []
        if info.kind is not TypeKind.POINTER and info.python_type is not None:
            converter = ConverterCodec(info)
            if issubclass(info.python_type, EnvEncoder):
                encode = converter.encode
                overridden.append("encode")
            if issubclass(info.python_type, EnvDecoder):
                decode = converter.decode
                overridden.append("decode")

        _logger.debug(
            "Derived routines for %s: kind=%s overrides=%s",
            info.name, info.kind.value, overridden or "none",
        )
        return Routines(kind=info.kind, encode=encode, decode=decode)

    def _derive_fields(self, record: type) -> Tuple[FieldDescriptor, ...]:
        if not _is_record_type(record):
            return ()

        hints = record_hints(record)
        fields = []
        for index, field in enumerate(dataclasses.fields(record)):
            tp = hints.get(field.name, field.type)
            exported = not field.name.startswith("_")

            if is_embedded(field):
                target, pointer = tp, False
                info = describe(tp)
                if info.kind is TypeKind.POINTER:
                    target, pointer = info.elem, True
                if not exported and not _is_record_type(target):
                    continue
                nested = self.fields_for(target)
                if not nested:
                    continue
                fields.append(FieldDescriptor(
                    index=index,
                    attr=field.name,
                    name=field.name,
                    type=tp,
                    embedded=nested,
                    record=target,
                    pointer=pointer,
                ))
                continue

            if not exported:
                continue

            tag = parse_tag(field.metadata.get(self._tag_name))
            if tag.skip:
                continue

            fields.append(FieldDescriptor(
                index=index,
                attr=field.name,
                name=tag.name or field.name,
                type=tp,
                mandatory=tag.mandatory,
                raw=tag.raw,
                routines=self.routines_for(tp),
            ))

        _logger.debug(
            "Derived %d fields for %s: %s",
            len(fields), record.__name__, ", ".join(f.name for f in fields),
        )
        return tuple(fields)
