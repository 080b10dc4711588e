"""Basic usage example for envio.

This example demonstrates how to:
- Declare a settings record with tags
- Read it from an isolated environment
- Write it back and inspect the variables
- Handle missing and malformed variables
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from envio import (
    Engine,
    EngineConfig,
    MappingEnvironment,
    UInt16,
    embedded,
    env_field,
    fixed_array,
)
from envio.exceptions import MissingVariableException, ParseException
from envio.logging import configure_logging


@dataclass
class Database:
    url: str = env_field("DATABASE_URL", mandatory=True, default="")
    pool: int = env_field("DATABASE_POOL", default=4)


@dataclass
class Settings:
    debug: bool = env_field("DEBUG", default=False)
    port: UInt16 = env_field("PORT", default=8080)
    hosts: List[str] = env_field("HOSTS", default_factory=list)
    weights: fixed_array(int, 3) = env_field("WEIGHTS", default_factory=lambda: [1, 1, 1])
    timeout: Optional[float] = None
    secret: bytes = env_field("SECRET", raw=True, default=b"")
    db: Database = embedded(default_factory=Database)


def main():
    configure_logging(level=logging.INFO)

    environ = MappingEnvironment({
        "DATABASE_URL": "postgres://localhost/app",
        "DEBUG": "true",
        "HOSTS": "a.example,b.example",
        "WEIGHTS": "5,2",
        "SECRET": "s3cr3t",
    })
    engine = Engine(EngineConfig(separator=","), environ)

    # Read
    settings = engine.get(Settings())
    print(f"Decoded: {settings}")

    # Write
    settings.port = 9090
    settings.timeout = 2.5
    engine.set(settings)
    print("\nVariables after set:")
    for name, value in sorted(environ.data.items()):
        print(f"  {name}={value}")

    # Errors
    try:
        Engine(store=MappingEnvironment()).get(Settings())
    except MissingVariableException as e:
        print(f"\nMissing: ${e.name}")

    try:
        Engine(store=MappingEnvironment({"DATABASE_URL": "x", "PORT": "70000"})).get(Settings())
    except ParseException as e:
        print(f"Malformed: {e}")


if __name__ == "__main__":
    main()
