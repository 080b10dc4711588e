"""Built-in codecs for the structural kinds.

This module provides the scalar conversions (parse and format) and one
codec per structural kind. The codecs are assembled into cached routine
pairs by :class:`~envio.serialization.service.CodecService`.

Supported Kinds:
    - Scalars: bool, signed and unsigned integers of any declared width,
      32 and 64-bit floats, str
    - Pointers (``Optional[X]``) and interfaces (``Any``)
    - Fixed-size arrays and slices of scalars or pointers to scalars,
      including ``bytes`` and ``bytearray``
    - Records (dataclasses)

Scalar formats:
    Booleans are written as ``true``/``false`` and read with the usual
    literal set (``1``, ``t``, ``TRUE`` ...). Integers are plain base-10
    digits bounded by the declared width. Floats are written with the
    shortest digits that round-trip at the declared precision, in ``%g``
    layout (``3.14``, ``1e-05``, ``+Inf``).
"""

import math
import re
import struct
from functools import partial
from typing import Any, Callable, Optional, Tuple

from envio.exceptions import (
    InvalidTargetException,
    NilValueException,
    UnsupportedTypeException,
)
from envio.serialization.api import Codec
from envio.serialization.types import (
    SCALAR_KINDS,
    TypeInfo,
    TypeKind,
    describe,
    is_mutable_record,
    new_instance,
    is_zero_value,
    zero_value,
)
from envio.store import from_bytes, to_bytes


TRUE_LITERALS = frozenset({"1", "t", "T", "TRUE", "true", "True"})
FALSE_LITERALS = frozenset({"0", "f", "F", "FALSE", "false", "False"})

_INT_RE = re.compile(r"[+-]?[0-9]+")
_UINT_RE = re.compile(r"[0-9]+")
_FLOAT_RE = re.compile(
    r"[+-]?(?:(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?|inf|infinity|nan)",
    re.IGNORECASE,
)
_HEX_FLOAT_RE = re.compile(
    r"[+-]?0[xX](?:[0-9a-fA-F]+\.?[0-9a-fA-F]*|\.[0-9a-fA-F]+)[pP][+-]?[0-9]+"
)

# %g switches to exponent form at this decimal exponent for shortest output.
EXPONENT_THRESHOLD = 6


def _syntax_error(text: str) -> ValueError:
    return ValueError(f"parsing {text!r}: invalid syntax")


def _range_error(text: str) -> ValueError:
    return ValueError(f"parsing {text!r}: value out of range")


def parse_bool(text: str) -> bool:
    if text in TRUE_LITERALS:
        return True
    if text in FALSE_LITERALS:
        return False
    raise _syntax_error(text)


def parse_int(text: str, bits: int = 64) -> int:
    if not _INT_RE.fullmatch(text):
        raise _syntax_error(text)
    value = int(text)
    limit = 1 << (bits - 1)
    if not -limit <= value < limit:
        raise _range_error(text)
    return value


def parse_uint(text: str, bits: int = 64) -> int:
    if not _UINT_RE.fullmatch(text):
        raise _syntax_error(text)
    value = int(text)
    if value >= 1 << bits:
        raise _range_error(text)
    return value


def round_float32(value: float) -> float:
    """Round a float to single precision.

    Raises:
        OverflowError: If the value is finite but beyond the float32 range.
    """
    return struct.unpack("<f", struct.pack("<f", value))[0]


def parse_float(text: str, bits: int = 64) -> float:
    try:
        if _HEX_FLOAT_RE.fullmatch(text):
            value = float.fromhex(text)
        elif _FLOAT_RE.fullmatch(text):
            value = float(text)
        else:
            raise _syntax_error(text)
        if math.isinf(value) and text.lstrip("+-").lower() not in ("inf", "infinity"):
            raise _range_error(text)
        if bits == 32:
            value = round_float32(value)
    except OverflowError:
        raise _range_error(text)
    return value


def format_bool(value: Any) -> str:
    return "true" if value else "false"


def format_int(value: Any) -> str:
    return str(int(value))


def _shortest(value: float, bits: int) -> Tuple[str, str, int]:
    """Find the shortest decimal digits that round-trip at ``bits`` precision.

    Returns:
        Sign, significant digits and decimal exponent of the first digit.
    """
    max_digits = 9 if bits == 32 else 17
    for precision in range(1, max_digits + 1):
        text = "%.*e" % (precision - 1, value)
        parsed = float(text)
        if bits == 32:
            parsed = round_float32(parsed)
        if parsed == value:
            break
    mantissa, _, exponent = text.partition("e")
    sign = ""
    if mantissa.startswith("-"):
        sign, mantissa = "-", mantissa[1:]
    digits = mantissa.replace(".", "").rstrip("0") or "0"
    return sign, digits, int(exponent)


def format_float(value: Any, bits: int = 64) -> str:
    value = float(value)
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    if bits == 32:
        value = round_float32(value)

    sign, digits, exponent = _shortest(value, bits)
    if exponent < -4 or exponent >= EXPONENT_THRESHOLD:
        head = digits[0] + ("." + digits[1:] if len(digits) > 1 else "")
        return f"{sign}{head}e{'-' if exponent < 0 else '+'}{abs(exponent):02d}"

    point = exponent + 1
    if point <= 0:
        return f"{sign}0.{'0' * -point}{digits}"
    if point >= len(digits):
        return f"{sign}{digits}{'0' * (point - len(digits))}"
    return f"{sign}{digits[:point]}.{digits[point:]}"


def format_string(value: Any) -> str:
    return str(value)


def _coerce(info: TypeInfo, parse: Callable[[str], Any]) -> Callable[[str], Any]:
    builtin = (bool, int, float, str)
    if info.python_type is None or info.python_type in builtin:
        return parse
    return lambda text: info.python_type(parse(text))


def scalar_parser(info: TypeInfo) -> Callable[[str], Any]:
    """Get the parse function for a scalar kind."""
    if info.kind is TypeKind.BOOL:
        parse = parse_bool
    elif info.kind is TypeKind.INT:
        parse = partial(parse_int, bits=info.bits)
    elif info.kind is TypeKind.UINT:
        parse = partial(parse_uint, bits=info.bits)
    elif info.kind is TypeKind.FLOAT:
        parse = partial(parse_float, bits=info.bits)
    elif info.kind is TypeKind.STRING:
        parse = str
    else:
        raise UnsupportedTypeException(info.name, "not a scalar")
    return _coerce(info, parse)


def scalar_formatter(info: TypeInfo) -> Callable[[Any], str]:
    """Get the format function for a scalar kind."""
    if info.kind is TypeKind.BOOL:
        return format_bool
    if info.kind in (TypeKind.INT, TypeKind.UINT):
        return format_int
    if info.kind is TypeKind.FLOAT:
        return partial(format_float, bits=info.bits)
    if info.kind is TypeKind.STRING:
        return format_string
    raise UnsupportedTypeException(info.name, "not a scalar")


def element_parser(elem: Any) -> Optional[Callable[[str], Any]]:
    """Get the parse function for container elements, if supported.

    Elements may be scalars or pointers to supported elements.
    """
    info = describe(elem)
    if info.kind in SCALAR_KINDS:
        return scalar_parser(info)
    if info.kind is TypeKind.POINTER:
        return element_parser(info.elem)
    return None


def element_formatter(elem: Any) -> Optional[Callable[[Any], str]]:
    """Get the format function for container elements, if supported."""
    info = describe(elem)
    if info.kind in SCALAR_KINDS:
        return scalar_formatter(info)
    if info.kind is TypeKind.POINTER:
        inner = element_formatter(info.elem)
        if inner is None:
            return None
        pointee = info.elem
        return lambda value: inner(zero_value(pointee) if value is None else value)
    return None


def _is_byte(elem: Any) -> bool:
    info = describe(elem)
    return info.kind is TypeKind.UINT and info.bits == 8


class ScalarCodec(Codec):
    """Codec for bool, integer, float and string kinds."""

    def __init__(self, info: TypeInfo):
        self._info = info
        self._parse = scalar_parser(info)
        self._format = scalar_formatter(info)

    def encode(self, state, value: Any) -> None:
        if value is None:
            value = zero_value(self._info.annotation)
        try:
            text = self._format(value)
        except OverflowError as e:
            raise state.format_error(self._info, e)
        state.write(text)

    def decode(self, state, current: Any) -> Any:
        text = state.read()
        if not text:
            return current
        try:
            return self._parse(text)
        except ValueError as e:
            raise state.parse_error(self._info, e)


class PointerCodec(Codec):
    """Codec for ``Optional[X]``.

    A ``None`` pointer encodes as the pointee's zero value. Decoding into
    ``None`` works on a fresh pointee and keeps it only if a non-empty
    variable was read for it and the result is not the zero value. Field
    defaults of the pointee do not count as set.
    """

    def __init__(self, info: TypeInfo):
        self._elem = info.elem

    def encode(self, state, value: Any) -> None:
        if value is None:
            value = zero_value(self._elem)
        state.encode_value(self._elem, value)

    def decode(self, state, current: Any) -> Any:
        if current is not None:
            return state.decode_value(self._elem, current)
        reads = state.reads
        candidate = state.decode_value(self._elem, zero_value(self._elem))
        if state.reads == reads or is_zero_value(self._elem, candidate):
            return None
        return candidate


class InterfaceCodec(Codec):
    """Codec for ``Any``; dispatches on the runtime type of the value."""

    def encode(self, state, value: Any) -> None:
        if value is None:
            raise NilValueException()
        state.encode_value(type(value), value)

    def decode(self, state, current: Any) -> Any:
        if current is None:
            raise NilValueException()
        return state.decode_value(type(current), current)


class _SequenceCodec(Codec):
    def __init__(self, info: TypeInfo, parse: Callable[[str], Any], fmt: Callable[[Any], str]):
        self._info = info
        self._parse = parse
        self._format = fmt
        self._bytes = _is_byte(info.elem)

    def encode(self, state, value: Any) -> None:
        if value is None:
            value = zero_value(self._info.annotation)
        if state.field.raw and self._bytes:
            state.write(from_bytes(bytes(value)))
            return
        try:
            text = state.separator.join(self._format(item) for item in value)
        except OverflowError as e:
            raise state.format_error(self._info, e)
        state.write(text)

    def _parse_items(self, state, pieces) -> list:
        try:
            return [self._parse(piece) for piece in pieces]
        except ValueError as e:
            raise state.parse_error(self._info, e)


class ArrayCodec(_SequenceCodec):
    """Codec for fixed-size arrays.

    Decoding keeps elements past the last parsed one and fails when more
    elements arrive than the array holds.
    """

    def decode(self, state, current: Any) -> Any:
        text = state.read()
        if not text:
            return current

        length = self._info.length
        result = list(current or ())[:length]
        result.extend(zero_value(self._info.elem) for _ in range(length - len(result)))

        if state.field.raw and self._bytes:
            items = list(to_bytes(text))
        else:
            items = text.split(state.separator)
        if len(items) > length:
            raise state.index_error(self._info, len(items))
        if not (state.field.raw and self._bytes):
            items = self._parse_items(state, items)

        result[:len(items)] = items
        return result


class SliceCodec(_SequenceCodec):
    """Codec for lists, ``bytes`` and ``bytearray``.

    Decoding always builds a new container sized to the element count.
    """

    def _build(self, items: list) -> Any:
        container = self._info.python_type
        if container is None or container is list:
            return items
        return container(items)

    def decode(self, state, current: Any) -> Any:
        text = state.read()
        if not text:
            return current
        if state.field.raw and self._bytes:
            return self._build(list(to_bytes(text)))
        return self._build(self._parse_items(state, text.split(state.separator)))


class StructCodec(Codec):
    """Codec for records; walks the record's fields."""

    def __init__(self, info: TypeInfo):
        self._record = info.python_type

    def encode(self, state, value: Any) -> None:
        if value is None:
            value = new_instance(self._record)
        state.encode_record(value)

    def decode(self, state, current: Any) -> Any:
        if current is None:
            current = new_instance(self._record)
        if not is_mutable_record(current):
            raise InvalidTargetException(current)
        state.decode_record(current)
        return current


class UnsupportedCodec(Codec):
    """Codec for types without a built-in representation."""

    def __init__(self, info: TypeInfo):
        self._name = info.name

    def encode(self, state, value: Any) -> None:
        raise UnsupportedTypeException(self._name)

    def decode(self, state, current: Any) -> Any:
        raise UnsupportedTypeException(self._name)


class ConverterCodec(Codec):
    """Codec delegating to ``encode_env``/``decode_env`` on the value itself."""

    def __init__(self, info: TypeInfo):
        self._info = info

    def encode(self, state, value: Any) -> None:
        if value is None:
            value = zero_value(self._info.annotation)
        raw = value.encode_env()
        if not isinstance(raw, (bytes, bytearray, memoryview)):
            raise UnsupportedTypeException(
                self._info.name, f"encode_env returned {type(raw).__name__}, expected bytes"
            )
        state.write(from_bytes(raw))

    def decode(self, state, current: Any) -> Any:
        text = state.read()
        target = new_instance(self._info.python_type)
        target.decode_env(to_bytes(text))
        return target


def codec_for(info: TypeInfo) -> Codec:
    """Select the structural codec for a described type."""
    kind = info.kind
    if kind in SCALAR_KINDS:
        return ScalarCodec(info)
    if kind is TypeKind.POINTER:
        return PointerCodec(info)
    if kind is TypeKind.INTERFACE:
        return InterfaceCodec()
    if kind in (TypeKind.ARRAY, TypeKind.SLICE):
        parse = element_parser(info.elem)
        fmt = element_formatter(info.elem)
        if parse is None or fmt is None:
            return UnsupportedCodec(info)
        if kind is TypeKind.ARRAY:
            return ArrayCodec(info, parse, fmt)
        return SliceCodec(info, parse, fmt)
    if kind is TypeKind.STRUCT:
        return StructCodec(info)
    return UnsupportedCodec(info)
