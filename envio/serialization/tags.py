"""Field tag parsing.

A tag is a short string stored in a dataclass field's metadata under the
engine's tag name (``"env"`` by default)::

    NAME[,m][,raw]     external name plus optional flags
    -                  skip the field

Flags after the name are order-insensitive and compared verbatim; unknown
flags are ignored.

Example:
    >>> from dataclasses import dataclass
    >>> @dataclass
    ... class Settings:
    ...     url: str = env_field("DATABASE_URL", mandatory=True)
    ...     token: bytes = env_field("TOKEN", raw=True)
    ...     cache: str = env_field(skip=True)
    >>> parse_tag("DATABASE_URL,m")
    Tag(name='DATABASE_URL', mandatory=True, raw=False, skip=False)
"""

import dataclasses
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from envio.config import DEFAULT_TAG_NAME


SKIP_MARKER = "-"
MANDATORY_FLAG = "m"
RAW_FLAG = "raw"
EMBEDDED_KEY = "envio.embedded"


@dataclass(frozen=True)
class Tag:
    """Parsed form of a field tag."""

    name: str = ""
    mandatory: bool = False
    raw: bool = False
    skip: bool = False


def parse_tag(tag: Optional[str]) -> Tag:
    """Parse a tag string.

    Args:
        tag: The raw tag, or None when the field carries no tag.

    Returns:
        The parsed tag. An empty name means "use the declared name".
    """
    if tag is None:
        return Tag()
    if tag == SKIP_MARKER:
        return Tag(skip=True)

    name, *flags = tag.split(",")
    flags = set(flags)
    return Tag(
        name=name,
        mandatory=MANDATORY_FLAG in flags,
        raw=RAW_FLAG in flags,
    )


def format_tag(
    name: Optional[str] = None,
    mandatory: bool = False,
    raw: bool = False,
    skip: bool = False,
) -> str:
    """Build a tag string; the inverse of :func:`parse_tag`."""
    if skip:
        return SKIP_MARKER
    parts = [name or ""]
    if mandatory:
        parts.append(MANDATORY_FLAG)
    if raw:
        parts.append(RAW_FLAG)
    return ",".join(parts)


def _with_metadata(extra: Mapping[str, Any], field_kwargs: dict) -> dict:
    metadata = dict(field_kwargs.pop("metadata", None) or {})
    metadata.update(extra)
    field_kwargs["metadata"] = metadata
    return field_kwargs


def env_field(
    name: Optional[str] = None,
    *,
    mandatory: bool = False,
    raw: bool = False,
    skip: bool = False,
    tag_name: str = DEFAULT_TAG_NAME,
    **field_kwargs: Any,
) -> Any:
    """Declare a dataclass field with an envio tag.

    Defaults are passed the same way as with ``dataclasses.field``;
    records decoded through pointers must be constructible with no
    arguments.

    Args:
        name: External variable name; defaults to the attribute name.
        mandatory: Require the variable on decode and never write a zero
            value over it on encode.
        raw: Store a byte sequence verbatim instead of joining elements.
        skip: Exclude the field entirely.
        tag_name: Metadata key, matching ``EngineConfig.tag_name``.
        **field_kwargs: Passed through to ``dataclasses.field``.
    """
    tag = format_tag(name, mandatory=mandatory, raw=raw, skip=skip)
    return dataclasses.field(**_with_metadata({tag_name: tag}, field_kwargs))


def embedded(**field_kwargs: Any) -> Any:
    """Declare a dataclass field whose record is flattened into its parent.

    The embedded record's fields are read and written under their own
    names, with no prefix. Annotate the field with ``Optional[Record]`` to
    allow ``None``; decoding into a ``None`` embedded record fails.
    """
    return dataclasses.field(**_with_metadata({EMBEDDED_KEY: True}, field_kwargs))


def is_embedded(field: dataclasses.Field) -> bool:
    return bool(field.metadata.get(EMBEDDED_KEY, False))
