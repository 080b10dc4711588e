"""envio: environment variables to and from Python records."""

from envio.config import EngineConfig
from envio.engine import Engine, default_engine, get_env, set_env
from envio.exceptions import (
    EnvioException,
    ConfigurationException,
    InvalidTargetException,
    MissingVariableException,
    ParseException,
    IndexOutOfRangeException,
    FormatException,
    UnsupportedTypeException,
    NilValueException,
    PointerToUnexportedException,
    StoreException,
)
from envio.serialization.api import EnvDecoder, EnvEncoder
from envio.serialization.tags import embedded, env_field
from envio.serialization.types import (
    Int8,
    Int16,
    Int32,
    Int64,
    UInt,
    UInt8,
    UInt16,
    UInt32,
    UInt64,
    Float32,
    Float64,
    fixed_array,
)
from envio.store import EnvironmentStore, MappingEnvironment, OsEnvironment

__all__ = [
    # Engine
    "Engine",
    "EngineConfig",
    "default_engine",
    "get_env",
    "set_env",
    # Declaring fields
    "env_field",
    "embedded",
    "fixed_array",
    "Int8",
    "Int16",
    "Int32",
    "Int64",
    "UInt",
    "UInt8",
    "UInt16",
    "UInt32",
    "UInt64",
    "Float32",
    "Float64",
    # Converters
    "EnvDecoder",
    "EnvEncoder",
    # Stores
    "EnvironmentStore",
    "MappingEnvironment",
    "OsEnvironment",
    # Exceptions
    "EnvioException",
    "ConfigurationException",
    "InvalidTargetException",
    "MissingVariableException",
    "ParseException",
    "IndexOutOfRangeException",
    "FormatException",
    "UnsupportedTypeException",
    "NilValueException",
    "PointerToUnexportedException",
    "StoreException",
]

__version__ = "0.1.0"
