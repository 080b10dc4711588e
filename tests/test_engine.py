"""Unit tests for envio.engine module."""

import os
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import pytest

from envio import (
    Engine,
    EngineConfig,
    Float32,
    Int8,
    UInt8,
    UInt16,
    embedded,
    env_field,
    fixed_array,
    get_env,
    set_env,
)
from envio.engine import default_engine
from envio.exceptions import (
    FormatException,
    IndexOutOfRangeException,
    InvalidTargetException,
    MissingVariableException,
    NilValueException,
    ParseException,
    PointerToUnexportedException,
    UnsupportedTypeException,
)
from envio.store import MappingEnvironment, OsEnvironment


@dataclass
class Simple:
    A: str = env_field("ENV_A", mandatory=True, default="")
    B: bool = env_field("ENV_B", default=False)
    C: int = env_field("ENV_C", default=0)
    D: float = 0.0
    _e: str = ""


@dataclass
class Nested:
    X: str = env_field("ENV_X", default="")
    Y: bool = env_field("ENV_Y", default=False)
    Z: int = env_field("ENV_Z", default=0)
    _simple: Simple = embedded(default_factory=Simple)


@dataclass
class Skip:
    S: str = env_field(skip=True, default="")
    K: int = env_field(skip=True, default=0)
    simple: Optional[Simple] = embedded(default=None)


@dataclass
class Pointer:
    A: Optional[int] = None


@dataclass
class DeepEmbed:
    Foo: Nested = field(default_factory=Nested)
    Bar: str = env_field("BAR", default="")


@dataclass
class SlcArr:
    Slc: List[bool] = env_field("ENV_SLC", default_factory=list)
    Arr: fixed_array(int, 5) = env_field("ENV_ARR", default_factory=lambda: [0] * 5)
    Bytes: bytes = env_field("ENV_BYTES", default=b"")
    BytesRaw: bytes = env_field("ENV_BYTES_RAW", raw=True, default=b"")


@dataclass
class Ordered:
    first: int = env_field("FIRST", default=0)
    second: str = env_field("SECOND", mandatory=True, default="")
    third: int = env_field("THIRD", default=0)


@dataclass
class Widths:
    i8: Int8 = 0
    u16: UInt16 = 0
    f32: Float32 = 0.0


@dataclass
class Interface:
    V: Any = None


@dataclass(frozen=True)
class Frozen:
    A: str = ""


@dataclass
class HasFrozen:
    inner: Frozen = field(default_factory=Frozen)


@dataclass
class EmbedsFrozen:
    inner: Frozen = embedded(default_factory=Frozen)


@dataclass
class Service:
    host: str = env_field("HOST", default="")
    port: int = env_field("PORT", default=8080)


@dataclass
class Coords:
    x: int = 0
    y: int = 0


@dataclass
class OptionalRecords:
    service: Optional[Service] = None
    coords: Optional[Coords] = None


class Token:
    """Converter without equality, so zero detection cannot compare it."""

    def __init__(self):
        self.text = "anonymous"

    def decode_env(self, raw: bytes) -> None:
        if raw:
            self.text = raw.decode()


@dataclass
class OptionalToken:
    token: Optional[Token] = None


class TestEngineGet:
    """Tests for Engine.get."""

    def test_simple(self, engine, environ):
        environ.data.update({"ENV_A": "test", "ENV_B": "true", "ENV_C": "28", "D": "3.14"})
        result = engine.get(Simple())
        assert result == Simple(A="test", B=True, C=28, D=3.14)

    def test_returns_target(self, engine, environ):
        environ.data["ENV_A"] = "test"
        target = Simple()
        assert engine.get(target) is target

    def test_unexported_field_ignored(self, engine, environ):
        environ.data.update({"ENV_A": "test", "_e": "secret"})
        assert engine.get(Simple())._e == ""

    def test_missing_mandatory(self, engine):
        with pytest.raises(MissingVariableException) as exc_info:
            engine.get(Simple())
        assert str(exc_info.value) == "env: the required variable $ENV_A is missing"
        assert exc_info.value.name == "ENV_A"

    def test_empty_mandatory_is_missing(self, engine, environ):
        environ.data["ENV_A"] = ""
        with pytest.raises(MissingVariableException):
            engine.get(Simple())

    def test_invalid_syntax(self, engine, environ):
        environ.data.update({"ENV_A": "test", "ENV_B": "?"})
        with pytest.raises(ParseException) as exc_info:
            engine.get(Simple())
        assert str(exc_info.value) == (
            "env: cannot get data into field Simple.B ($ENV_B) of type bool: "
            "parsing '?': invalid syntax"
        )
        assert exc_info.value.record == "Simple"
        assert exc_info.value.field == "B"
        assert exc_info.value.name == "ENV_B"
        assert isinstance(exc_info.value.cause, ValueError)

    def test_absent_leaves_value(self, engine, environ):
        environ.data["ENV_A"] = "test"
        result = engine.get(Simple(C=5, D=1.5))
        assert result.C == 5
        assert result.D == 1.5

    def test_partial_state_on_failure(self, engine, environ):
        environ.data.update({"FIRST": "1", "THIRD": "3"})
        target = Ordered()
        with pytest.raises(MissingVariableException):
            engine.get(target)
        assert target.first == 1
        assert target.third == 0

    def test_embedded_flattened(self, engine, environ):
        environ.data.update({
            "ENV_X": "hello",
            "ENV_Y": "1",
            "ENV_Z": "-3",
            "ENV_A": "inner",
            "ENV_C": "7",
        })
        result = engine.get(Nested())
        assert result.X == "hello"
        assert result.Y is True
        assert result.Z == -3
        assert result._simple == Simple(A="inner", C=7)

    def test_nested_record_field(self, engine, environ):
        environ.data.update({"ENV_X": "deep", "ENV_A": "a", "BAR": "bar"})
        result = engine.get(DeepEmbed())
        assert result.Foo.X == "deep"
        assert result.Foo._simple.A == "a"
        assert result.Bar == "bar"

    def test_skip(self, engine, environ):
        environ.data.update({"S": "s", "K": "1", "ENV_A": "test"})
        result = engine.get(Skip(simple=Simple()))
        assert result.S == ""
        assert result.K == 0
        assert result.simple.A == "test"

    def test_none_embedded_rejected(self, engine, environ):
        environ.data["ENV_A"] = "test"
        with pytest.raises(PointerToUnexportedException):
            engine.get(Skip())

    def test_pointer_set(self, engine, environ):
        environ.data["A"] = "28"
        assert engine.get(Pointer()).A == 28

    def test_pointer_unset_stays_none(self, engine):
        assert engine.get(Pointer()).A is None

    def test_pointer_zero_stays_none(self, engine, environ):
        environ.data["A"] = "0"
        assert engine.get(Pointer()).A is None

    def test_pointer_existing_value_updated(self, engine, environ):
        environ.data["A"] = "3"
        assert engine.get(Pointer(A=1)).A == 3

    def test_pointer_record_with_defaults_unset(self, engine):
        result = engine.get(OptionalRecords())
        assert result.service is None
        assert result.coords is None

    def test_pointer_record_with_defaults_set(self, engine, environ):
        environ.data["HOST"] = "db"
        result = engine.get(OptionalRecords())
        assert result.service == Service(host="db", port=8080)
        assert result.coords is None

    def test_pointer_record_all_zero_defaults(self, engine, environ):
        environ.data["y"] = "4"
        result = engine.get(OptionalRecords())
        assert result.coords == Coords(y=4)
        assert result.service is None

    def test_pointer_record_set_to_zero(self, engine, environ):
        environ.data["PORT"] = "0"
        assert engine.get(OptionalRecords()).service is None

    def test_pointer_converter_unset(self, engine):
        assert engine.get(OptionalToken()).token is None

    def test_pointer_converter_set(self, engine, environ):
        environ.data["token"] = "secret"
        assert engine.get(OptionalToken()).token.text == "secret"

    def test_frozen_record_field_rejected(self, engine, environ):
        environ.data["A"] = "a"
        with pytest.raises(InvalidTargetException) as exc_info:
            engine.get(HasFrozen())
        assert str(exc_info.value) == "env: the input value is not a mutable record: Frozen"

    def test_frozen_embedded_record_rejected(self, engine, environ):
        environ.data["A"] = "a"
        with pytest.raises(InvalidTargetException):
            engine.get(EmbedsFrozen())

    def test_slices_and_arrays(self, engine, environ):
        environ.data.update({
            "ENV_SLC": "true:false:true",
            "ENV_ARR": "0:5:8",
            "ENV_BYTES": "65:66:67:68",
            "ENV_BYTES_RAW": "ABCD",
        })
        result = engine.get(SlcArr())
        assert result.Slc == [True, False, True]
        assert result.Arr == [0, 5, 8, 0, 0]
        assert result.Bytes == b"ABCD"
        assert result.BytesRaw == b"ABCD"

    def test_array_keeps_tail(self, engine, environ):
        environ.data["ENV_ARR"] = "1:2"
        result = engine.get(SlcArr(Arr=[9, 9, 9, 9, 9]))
        assert result.Arr == [1, 2, 9, 9, 9]

    def test_array_overflow(self, engine, environ):
        environ.data["ENV_ARR"] = "1:2:3:4:5:6"
        with pytest.raises(IndexOutOfRangeException) as exc_info:
            engine.get(SlcArr())
        assert isinstance(exc_info.value, ParseException)
        assert exc_info.value.type_name == "[5]int"

    def test_slice_is_new_container(self, engine, environ):
        environ.data["ENV_SLC"] = "1"
        current = [False, False, False]
        result = engine.get(SlcArr(Slc=current))
        assert result.Slc == [True]
        assert result.Slc is not current
        assert current == [False, False, False]

    def test_slice_element_error(self, engine, environ):
        environ.data["ENV_SLC"] = "true:maybe"
        with pytest.raises(ParseException) as exc_info:
            engine.get(SlcArr())
        assert "parsing 'maybe'" in str(exc_info.value)

    def test_raw_fixed_array(self, engine, environ):
        @dataclass
        class RawArr:
            data: fixed_array(UInt8, 4) = env_field(
                "RAW", raw=True, default_factory=lambda: [0] * 4
            )

        environ.data["RAW"] = "AB"
        assert engine.get(RawArr()).data == [65, 66, 0, 0]

        environ.data["RAW"] = "ABCDE"
        with pytest.raises(IndexOutOfRangeException):
            engine.get(RawArr())

    def test_bytearray(self, engine, environ):
        @dataclass
        class Buffer:
            buf: bytearray = field(default_factory=bytearray)

        environ.data["buf"] = "1:2:255"
        result = engine.get(Buffer())
        assert isinstance(result.buf, bytearray)
        assert result.buf == bytearray([1, 2, 255])

    def test_pointer_elements(self, engine, environ):
        @dataclass
        class Ptrs:
            values: List[Optional[int]] = field(default_factory=list)

        environ.data["values"] = "1:2"
        assert engine.get(Ptrs()).values == [1, 2]

    @pytest.mark.parametrize("name,value,message", [
        ("i8", "128", "value out of range"),
        ("i8", "-129", "value out of range"),
        ("u16", "-1", "invalid syntax"),
        ("u16", "65536", "value out of range"),
        ("f32", "1e39", "value out of range"),
        ("f32", "abc", "invalid syntax"),
    ])
    def test_width_errors(self, engine, environ, name, value, message):
        environ.data[name] = value
        with pytest.raises(ParseException) as exc_info:
            engine.get(Widths())
        assert message in str(exc_info.value)

    def test_width_type_name_in_error(self, engine, environ):
        environ.data["i8"] = "300"
        with pytest.raises(ParseException) as exc_info:
            engine.get(Widths())
        assert exc_info.value.type_name == "int8"

    def test_width_bounds(self, engine, environ):
        environ.data.update({"i8": "-128", "u16": "65535", "f32": "0.1"})
        result = engine.get(Widths())
        assert result.i8 == -128
        assert result.u16 == 65535
        assert result.f32 == pytest.approx(0.1, rel=1e-7)
        assert result.f32 != 0.1

    def test_interface_dispatches_on_value(self, engine, environ):
        environ.data["V"] = "7"
        assert engine.get(Interface(V=5)).V == 7

    def test_interface_none(self, engine):
        with pytest.raises(NilValueException):
            engine.get(Interface())

    def test_unsupported_field(self, engine):
        @dataclass
        class Bad:
            m: Dict[str, int] = field(default_factory=dict)

        with pytest.raises(UnsupportedTypeException) as exc_info:
            engine.get(Bad())
        assert "unsupported type" in str(exc_info.value)

    def test_unsupported_slice_of_records(self, engine, environ):
        @dataclass
        class Bad:
            items: List[Simple] = field(default_factory=list)

        environ.data["items"] = "x"
        with pytest.raises(UnsupportedTypeException):
            engine.get(Bad())

    @pytest.mark.parametrize("target", [
        None,
        5,
        "text",
        Simple,
        Frozen(),
    ])
    def test_invalid_target(self, engine, target):
        with pytest.raises(InvalidTargetException):
            engine.get(target)

    def test_custom_tag_name(self, environ):
        @dataclass
        class Tagged:
            value: int = env_field("VALUE", tag_name="var", default=0)

        engine = Engine(EngineConfig(separator=":", tag_name="var"), environ)
        environ.data["VALUE"] = "3"
        assert engine.get(Tagged()).value == 3

    def test_other_tag_name_ignored(self, engine, environ):
        @dataclass
        class Tagged:
            value: int = env_field("VALUE", tag_name="var", default=0)

        environ.data.update({"VALUE": "3", "value": "4"})
        assert engine.get(Tagged()).value == 4


class TestEngineSet:
    """Tests for Engine.set."""

    def test_simple(self, engine, environ):
        engine.set(Simple(A="test", B=True, C=28, D=3.14))
        assert environ.data == {"ENV_A": "test", "ENV_B": "true", "ENV_C": "28", "D": "3.14"}

    def test_mandatory_zero_not_overwritten(self, engine, environ):
        environ.data["ENV_A"] = "test"
        engine.set(Simple(B=True, C=28, D=3.14))
        assert environ.data["ENV_A"] == "test"
        assert environ.data["ENV_B"] == "true"

    def test_mandatory_zero_not_created(self, engine, environ):
        engine.set(Simple())
        assert "ENV_A" not in environ.data
        assert environ.data["ENV_B"] == "false"

    def test_embedded_flattened(self, engine, environ):
        engine.set(Nested(X="x", Y=True, Z=2, _simple=Simple(A="a", C=1)))
        assert environ.data == {
            "ENV_X": "x",
            "ENV_Y": "true",
            "ENV_Z": "2",
            "ENV_A": "a",
            "ENV_B": "false",
            "ENV_C": "1",
            "D": "0",
        }

    def test_skip(self, engine, environ):
        engine.set(Skip(S="s", K=1, simple=Simple(A="a")))
        assert "S" not in environ.data
        assert "K" not in environ.data
        assert environ.data["ENV_A"] == "a"

    def test_none_embedded_writes_zero_values(self, engine, environ):
        engine.set(Skip())
        assert environ.data == {"ENV_B": "false", "ENV_C": "0", "D": "0"}

    def test_pointer(self, engine, environ):
        engine.set(Pointer(A=28))
        assert environ.data == {"A": "28"}

    def test_none_pointer_writes_zero(self, engine, environ):
        engine.set(Pointer())
        assert environ.data == {"A": "0"}

    def test_slices_and_arrays(self, engine, environ):
        engine.set(SlcArr(
            Slc=[True, False, True],
            Arr=[0, 5, 8, 0, 0],
            Bytes=b"ABCD",
            BytesRaw=b"ABCD",
        ))
        assert environ.data == {
            "ENV_SLC": "true:false:true",
            "ENV_ARR": "0:5:8:0:0",
            "ENV_BYTES": "65:66:67:68",
            "ENV_BYTES_RAW": "ABCD",
        }

    def test_empty_slice(self, engine, environ):
        engine.set(SlcArr())
        assert environ.data["ENV_SLC"] == ""
        assert environ.data["ENV_BYTES_RAW"] == ""

    def test_pointer_elements(self, engine, environ):
        @dataclass
        class Ptrs:
            values: List[Optional[int]] = field(default_factory=list)

        engine.set(Ptrs(values=[None, 3]))
        assert environ.data["values"] == "0:3"

    def test_widths(self, engine, environ):
        engine.set(Widths(i8=-5, u16=7, f32=0.1))
        assert environ.data == {"i8": "-5", "u16": "7", "f32": "0.1"}

    def test_float32_beyond_range(self, engine, environ):
        with pytest.raises(FormatException) as exc_info:
            engine.set(Widths(f32=1e39))
        assert exc_info.value.record == "Widths"
        assert exc_info.value.field == "f32"
        assert exc_info.value.type_name == "float32"
        assert isinstance(exc_info.value.cause, OverflowError)
        assert "f32" not in environ.data

    def test_float32_element_beyond_range(self, engine):
        @dataclass
        class Ratios:
            values: List[Float32] = field(default_factory=list)

        with pytest.raises(FormatException) as exc_info:
            engine.set(Ratios(values=[0.5, -1e39]))
        assert exc_info.value.name == "values"

    def test_float32_infinity_allowed(self, engine, environ):
        engine.set(Widths(f32=float("inf")))
        assert environ.data["f32"] == "+Inf"

    def test_interface(self, engine, environ):
        engine.set(Interface(V=1.5))
        assert environ.data == {"V": "1.5"}

    def test_interface_none(self, engine):
        with pytest.raises(NilValueException):
            engine.set(Interface())

    def test_separator(self, environ):
        engine = Engine(EngineConfig(separator=","), environ)
        engine.set(SlcArr(Slc=[True, False]))
        assert environ.data["ENV_SLC"] == "true,false"

    def test_none_source(self, engine):
        with pytest.raises(NilValueException):
            engine.set(None)

    @pytest.mark.parametrize("source", [5, "text", [1, 2], Simple])
    def test_non_record_source(self, engine, source):
        with pytest.raises(UnsupportedTypeException):
            engine.set(source)

    def test_frozen_source_allowed(self, engine, environ):
        engine.set(Frozen(A="a"))
        assert environ.data == {"A": "a"}

    def test_unsupported_field(self, engine):
        @dataclass
        class Bad:
            m: Dict[str, int] = field(default_factory=dict)

        with pytest.raises(UnsupportedTypeException):
            engine.set(Bad())


class TestRoundTrip:
    """Tests for encoding followed by decoding."""

    @pytest.mark.parametrize("record", [
        Simple(A="a", B=True, C=-3, D=2.5),
        Nested(X="x", Y=True, Z=9, _simple=Simple(A="inner", D=1e-05)),
        DeepEmbed(Foo=Nested(X="deep", _simple=Simple(A="a")), Bar="bar"),
        SlcArr(Slc=[True, True], Arr=[1, 2, 3, 4, 5], Bytes=b"\x00\x01", BytesRaw=b"\xff\xfe"),
        Widths(i8=-128, u16=65535, f32=1.5),
        Pointer(A=12),
    ])
    def test_round_trip(self, engine, record):
        engine.set(record)
        decoded = engine.get(type(record)())
        assert decoded == record

    @pytest.mark.parametrize("value", [0.1, 1e21, 1e-7, 123456789.125, -0.5])
    def test_float_round_trip(self, engine, value):
        engine.set(Simple(A="a", D=value))
        assert engine.get(Simple()).D == value


class TestModuleFunctions:
    """Tests for get_env, set_env and default_engine."""

    def test_default_engine_is_shared(self):
        assert default_engine() is default_engine()
        assert isinstance(default_engine().store, OsEnvironment)

    def test_get_env(self, os_environ):
        os_environ["ENV_A"] = "from-os"
        os_environ["ENV_C"] = "11"
        result = get_env(Simple())
        assert result.A == "from-os"
        assert result.C == 11

    def test_set_env(self, os_environ):
        set_env(Simple(A="to-os", B=True))
        assert os_environ["ENV_A"] == "to-os"
        assert os_environ["ENV_B"] == "true"

    def test_default_separator(self, os_environ):
        set_env(SlcArr(Slc=[True, False]))
        assert os_environ["ENV_SLC"] == f"true{os.pathsep}false"


class TestConcurrency:
    """Tests for concurrent use of one engine."""

    @pytest.mark.timeout(10)
    def test_concurrent_get(self):
        environ = MappingEnvironment({"ENV_A": "a", "ENV_ARR": "1:2:3", "ENV_SLC": "true"})
        engine = Engine(EngineConfig(separator=":"), environ)
        results = []
        errors = []
        barrier = threading.Barrier(8)

        def worker():
            barrier.wait()
            try:
                results.append(engine.get(SlcArr()))
                results.append(engine.get(Simple()))
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert len(results) == 16
        assert all(
            r.Arr == [1, 2, 3, 0, 0] for r in results if isinstance(r, SlcArr)
        )

    def test_engines_do_not_share_caches(self):
        first = Engine(store=MappingEnvironment())
        second = Engine(store=MappingEnvironment())
        assert first.service is not second.service
