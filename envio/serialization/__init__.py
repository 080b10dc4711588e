"""envio serialization package."""

from envio.serialization.api import (
    Codec,
    EnvDecoder,
    EnvEncoder,
    Routines,
)
from envio.serialization.service import (
    CodecService,
    FieldDescriptor,
)
from envio.serialization.tags import (
    Tag,
    embedded,
    env_field,
    format_tag,
    parse_tag,
)
from envio.serialization.types import (
    Float32,
    Float64,
    Int8,
    Int16,
    Int32,
    Int64,
    TypeInfo,
    TypeKind,
    UInt,
    UInt8,
    UInt16,
    UInt32,
    UInt64,
    describe,
    fixed_array,
)

__all__ = [
    "Codec",
    "EnvDecoder",
    "EnvEncoder",
    "Routines",
    "CodecService",
    "FieldDescriptor",
    "Tag",
    "embedded",
    "env_field",
    "format_tag",
    "parse_tag",
    "Float32",
    "Float64",
    "Int8",
    "Int16",
    "Int32",
    "Int64",
    "TypeInfo",
    "TypeKind",
    "UInt",
    "UInt8",
    "UInt16",
    "UInt32",
    "UInt64",
    "describe",
    "fixed_array",
]
