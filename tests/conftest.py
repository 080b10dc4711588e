"""Shared pytest fixtures for envio tests."""

import os

import pytest

from envio.config import EngineConfig
from envio.engine import Engine
from envio.serialization.service import CodecService
from envio.store import MappingEnvironment


@pytest.fixture
def environ():
    """Create an empty isolated variable store."""
    return MappingEnvironment()


@pytest.fixture
def config():
    """Create an EngineConfig with a fixed separator."""
    return EngineConfig(separator=":")


@pytest.fixture
def engine(config, environ):
    """Create an Engine over the isolated store."""
    return Engine(config, environ)


@pytest.fixture
def service():
    """Create a fresh CodecService."""
    return CodecService()


@pytest.fixture
def os_environ():
    """Give a test the process environment and restore it afterwards."""
    saved = dict(os.environ)
    yield os.environ
    os.environ.clear()
    os.environ.update(saved)
