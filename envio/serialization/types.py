"""Type model for envio serialization.

Every field annotation is reduced to a :class:`TypeInfo` carrying one
:class:`TypeKind` from a closed set. Python integers and floats have no
declared width, so widths are attached with ``typing.Annotated`` markers:

    - ``Int8``, ``Int16``, ``Int32``, ``Int64`` (``int`` is 64-bit)
    - ``UInt``, ``UInt8``, ``UInt16``, ``UInt32``, ``UInt64``
    - ``Float32``, ``Float64`` (``float`` is 64-bit)
    - ``fixed_array(element_type, length)`` for fixed-size arrays

Example:
    >>> from dataclasses import dataclass
    >>> @dataclass
    ... class Limits:
    ...     retries: Int8 = 0
    ...     ratio: Float32 = 0.0
    ...     ports: fixed_array(UInt16, 3) = None
"""

import dataclasses
import types
import typing
from dataclasses import dataclass
from enum import Enum
from typing import Annotated, Any, List, Optional, Union, get_args, get_origin

from envio.exceptions import UnsupportedTypeException


_UnionType = getattr(types, "UnionType", None)
_NoneType = type(None)


class TypeKind(Enum):
    """Structural kinds understood by the codec dispatch."""

    BOOL = "bool"
    INT = "int"
    UINT = "uint"
    FLOAT = "float"
    STRING = "string"
    POINTER = "pointer"
    INTERFACE = "interface"
    ARRAY = "array"
    SLICE = "slice"
    STRUCT = "struct"
    UNSUPPORTED = "unsupported"


SCALAR_KINDS = frozenset(
    {TypeKind.BOOL, TypeKind.INT, TypeKind.UINT, TypeKind.FLOAT, TypeKind.STRING}
)


@dataclass(frozen=True)
class IntWidth:
    """Declared width of an integer field."""

    bits: int
    signed: bool = True


@dataclass(frozen=True)
class FloatWidth:
    """Declared precision of a floating-point field (32 or 64)."""

    bits: int


@dataclass(frozen=True)
class FixedLength:
    """Declared capacity of a fixed-size array field."""

    length: int


Int8 = Annotated[int, IntWidth(8)]
Int16 = Annotated[int, IntWidth(16)]
Int32 = Annotated[int, IntWidth(32)]
Int64 = Annotated[int, IntWidth(64)]
UInt = Annotated[int, IntWidth(64, signed=False)]
UInt8 = Annotated[int, IntWidth(8, signed=False)]
UInt16 = Annotated[int, IntWidth(16, signed=False)]
UInt32 = Annotated[int, IntWidth(32, signed=False)]
UInt64 = Annotated[int, IntWidth(64, signed=False)]
Float32 = Annotated[float, FloatWidth(32)]
Float64 = Annotated[float, FloatWidth(64)]


def fixed_array(element_type: Any, length: int) -> Any:
    """Build the annotation of a fixed-size array.

    The field holds a Python list of exactly ``length`` elements after
    decoding.

    Args:
        element_type: Annotation of the elements.
        length: Capacity of the array.

    Returns:
        An ``Annotated[List[element_type], FixedLength(length)]`` alias.
    """
    if length < 0:
        raise ValueError(f"array length must be non-negative: {length}")
    return Annotated[List[element_type], FixedLength(length)]


@dataclass(frozen=True)
class TypeInfo:
    """Structural description of one annotation.

    Attributes:
        kind: The structural kind.
        annotation: The annotation this info was derived from.
        python_type: Concrete class backing the value, if any.
        bits: Declared width for integer and float kinds.
        elem: Element annotation for arrays and slices, pointee for pointers.
        length: Capacity for arrays.
    """

    kind: TypeKind
    annotation: Any
    python_type: Optional[type] = None
    bits: int = 0
    elem: Any = None
    length: int = 0

    @property
    def name(self) -> str:
        return type_name(self.annotation)


def _split_annotated(tp: Any):
    if get_origin(tp) is Annotated:
        base, *metadata = get_args(tp)
        return base, tuple(metadata)
    return tp, ()


def _marker(metadata, marker_type):
    for item in metadata:
        if isinstance(item, marker_type):
            return item
    return None


def is_union(tp: Any) -> bool:
    origin = get_origin(tp)
    return origin is Union or (_UnionType is not None and origin is _UnionType)


def describe(tp: Any) -> TypeInfo:
    """Describe an annotation.

    Args:
        tp: A type or typing annotation.

    Returns:
        The structural description. Annotations outside the supported
        set are described with :attr:`TypeKind.UNSUPPORTED`.
    """
    base, metadata = _split_annotated(tp)

    if base is Any or base is object:
        return TypeInfo(TypeKind.INTERFACE, tp)

    if is_union(base):
        args = get_args(base)
        rest = [arg for arg in args if arg is not _NoneType]
        if len(args) == 2 and len(rest) == 1:
            return TypeInfo(TypeKind.POINTER, tp, elem=rest[0])
        return TypeInfo(TypeKind.UNSUPPORTED, tp)

    origin = get_origin(base)
    if origin is list:
        args = get_args(base)
        elem = args[0] if args else Any
        fixed = _marker(metadata, FixedLength)
        if fixed is not None:
            return TypeInfo(TypeKind.ARRAY, tp, list, elem=elem, length=fixed.length)
        return TypeInfo(TypeKind.SLICE, tp, list, elem=elem)
    if origin is not None or not isinstance(base, type):
        return TypeInfo(TypeKind.UNSUPPORTED, tp)

    if dataclasses.is_dataclass(base):
        return TypeInfo(TypeKind.STRUCT, tp, base)
    if issubclass(base, bool):
        return TypeInfo(TypeKind.BOOL, tp, base)
    if issubclass(base, int):
        width = _marker(metadata, IntWidth) or IntWidth(64)
        kind = TypeKind.INT if width.signed else TypeKind.UINT
        return TypeInfo(kind, tp, base, bits=width.bits)
    if issubclass(base, float):
        width = _marker(metadata, FloatWidth) or FloatWidth(64)
        return TypeInfo(TypeKind.FLOAT, tp, base, bits=width.bits)
    if issubclass(base, str):
        return TypeInfo(TypeKind.STRING, tp, base)
    if issubclass(base, (bytes, bytearray)):
        return TypeInfo(TypeKind.SLICE, tp, base, elem=UInt8)
    return TypeInfo(TypeKind.UNSUPPORTED, tp, base)


def type_name(tp: Any) -> str:
    """Printable name of an annotation, used in error messages."""
    base, metadata = _split_annotated(tp)
    int_width = _marker(metadata, IntWidth)
    if int_width is not None:
        return f"{'int' if int_width.signed else 'uint'}{int_width.bits}"
    float_width = _marker(metadata, FloatWidth)
    if float_width is not None:
        return f"float{float_width.bits}"
    fixed = _marker(metadata, FixedLength)
    if fixed is not None:
        args = get_args(base)
        return f"[{fixed.length}]{type_name(args[0] if args else Any)}"
    if isinstance(base, type) and get_origin(base) is None:
        return base.__name__
    return repr(base).replace("typing.", "")


_hints_cache: typing.Dict[type, typing.Dict[str, Any]] = {}


def record_hints(cls: type) -> typing.Dict[str, Any]:
    """Resolve the field annotations of a record type.

    Resolved hints are cached per type and shared; callers must not
    modify the returned mapping.

    Raises:
        UnsupportedTypeException: If an annotation cannot be resolved.
    """
    hints = _hints_cache.get(cls)
    if hints is not None:
        return hints
    try:
        hints = typing.get_type_hints(cls, include_extras=True)
    except (NameError, TypeError) as e:
        raise UnsupportedTypeException(
            cls.__name__, "cannot resolve field annotations", cause=e
        )
    return _hints_cache.setdefault(cls, hints)


def is_mutable_record(value: Any) -> bool:
    """Check whether ``value`` is a dataclass instance that accepts assignment."""
    if isinstance(value, type) or not dataclasses.is_dataclass(value):
        return False
    return not type(value).__dataclass_params__.frozen


def new_instance(cls: type) -> Any:
    """Create a default instance of ``cls`` with a no-argument call."""
    try:
        return cls()
    except TypeError as e:
        raise UnsupportedTypeException(
            cls.__name__, "cannot create a zero value", cause=e
        )


def zero_value(tp: Any) -> Any:
    """Create the zero value of an annotation.

    Pointers and interfaces are ``None``, arrays are filled with element
    zero values, and every other type is constructed with no arguments.
    """
    info = describe(tp)
    if info.kind in (TypeKind.POINTER, TypeKind.INTERFACE):
        return None
    if info.kind is TypeKind.ARRAY:
        return [zero_value(info.elem) for _ in range(info.length)]
    if info.python_type is None:
        return None
    return new_instance(info.python_type)


def is_zero_value(tp: Any, value: Any) -> bool:
    """Check whether ``value`` is the zero value of annotation ``tp``."""
    if value is None:
        return True

    info = describe(tp)
    kind = info.kind
    if kind in (TypeKind.BOOL, TypeKind.INT, TypeKind.UINT, TypeKind.FLOAT):
        return value == 0
    if kind is TypeKind.STRING:
        return value == ""
    if kind in (TypeKind.POINTER, TypeKind.INTERFACE):
        return False
    if kind is TypeKind.SLICE:
        return len(value) == 0
    if kind is TypeKind.ARRAY:
        return all(is_zero_value(info.elem, item) for item in value)
    if kind is TypeKind.STRUCT:
        hints = record_hints(type(value))
        return all(
            is_zero_value(hints.get(f.name, Any), getattr(value, f.name, None))
            for f in dataclasses.fields(value)
        )

    if info.python_type is None:
        return False
    try:
        return value == info.python_type()
    except TypeError:
        return False
