"""envio engine configuration."""

import os
import string
from typing import Any, Dict

from envio.exceptions import ConfigurationException


DEFAULT_SEPARATOR = os.pathsep
DEFAULT_TAG_NAME = "env"

# Characters that appear in formatted numbers and booleans.
RESERVED_SEPARATOR_CHARS = frozenset(string.ascii_letters + string.digits + string.whitespace + "+-._")


class EngineConfig:
    """Configuration for an :class:`~envio.engine.Engine`.

    Args:
        separator: Single character joining array and slice elements.
        tag_name: Dataclass field metadata key holding the tag string.

    Example:
        >>> config = EngineConfig(separator=",")
        >>> config.separator
        ','
    """

    def __init__(
        self,
        separator: str = DEFAULT_SEPARATOR,
        tag_name: str = DEFAULT_TAG_NAME,
    ):
        self._separator = separator
        self._tag_name = tag_name
        self._validate()

    def _validate(self) -> None:
        if not isinstance(self._separator, str) or len(self._separator) != 1:
            raise ConfigurationException("separator must be a single character")
        if self._separator in RESERVED_SEPARATOR_CHARS:
            raise ConfigurationException(
                f"separator {self._separator!r} collides with scalar formatting"
            )
        if not isinstance(self._tag_name, str) or not self._tag_name:
            raise ConfigurationException("tag_name must be a non-empty string")

    @property
    def separator(self) -> str:
        """Get the container element separator."""
        return self._separator

    @separator.setter
    def separator(self, value: str) -> None:
        self._separator = value
        self._validate()

    @property
    def tag_name(self) -> str:
        """Get the field metadata key used for tags."""
        return self._tag_name

    @tag_name.setter
    def tag_name(self, value: str) -> None:
        self._tag_name = value
        self._validate()

    def to_dict(self) -> Dict[str, Any]:
        """Convert the configuration to a dictionary."""
        return {
            "separator": self._separator,
            "tag_name": self._tag_name,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "EngineConfig":
        """Create EngineConfig from a dictionary."""
        if "envio" in data:
            data = data["envio"] or {}
        return cls(
            separator=data.get("separator", DEFAULT_SEPARATOR),
            tag_name=data.get("tag_name", DEFAULT_TAG_NAME),
        )

    @classmethod
    def from_yaml(cls, yaml_path: str) -> "EngineConfig":
        """Load configuration from a YAML file.

        Args:
            yaml_path: Path to the YAML configuration file.

        Returns:
            EngineConfig instance.

        Raises:
            ConfigurationException: If the file cannot be read or parsed.
        """
        import yaml

        if not os.path.exists(yaml_path):
            raise ConfigurationException(f"Configuration file not found: {yaml_path}")

        try:
            with open(yaml_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationException(f"Failed to parse YAML: {e}", cause=e)
        except IOError as e:
            raise ConfigurationException(f"Failed to read configuration file: {e}", cause=e)

        return cls._from_loaded(data)

    @classmethod
    def from_yaml_string(cls, yaml_content: str) -> "EngineConfig":
        """Load configuration from a YAML string.

        Args:
            yaml_content: YAML configuration as a string.

        Returns:
            EngineConfig instance.

        Raises:
            ConfigurationException: If the YAML cannot be parsed.
        """
        import yaml

        try:
            data = yaml.safe_load(yaml_content)
        except yaml.YAMLError as e:
            raise ConfigurationException(f"Failed to parse YAML: {e}", cause=e)

        return cls._from_loaded(data)

    @classmethod
    def _from_loaded(cls, data: Any) -> "EngineConfig":
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigurationException("YAML configuration must be a mapping")
        return cls.from_dict(data)

    def __repr__(self) -> str:
        return f"EngineConfig(separator={self._separator!r}, tag_name={self._tag_name!r})"
