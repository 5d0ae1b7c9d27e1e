"""Shared pytest fixtures for all tests."""

import os

import pytest

from jsxfer.config import TransferConfig

from fakes import FakeBroker


@pytest.fixture
def broker():
    """In-memory broker with a few loop turns of publish latency."""
    return FakeBroker()


@pytest.fixture
def output_dir(tmp_path):
    """Download destination directory, separate from the source files."""
    path = tmp_path / 'downloads'
    path.mkdir()
    return path


@pytest.fixture
def config(output_dir):
    """Default config writing downloads into output_dir, with short timeouts."""
    return TransferConfig(output_dir=output_dir, first_timeout=0.5, next_timeout=0.1)


@pytest.fixture
def make_file(tmp_path):
    """
    Factory for source files with random content.

    Args:
        name: file name inside tmp_path/source
        size: number of bytes
    """
    source_dir = tmp_path / 'source'
    source_dir.mkdir()

    def _make(name: str, size: int):
        path = source_dir / name
        path.write_bytes(os.urandom(size))
        return path

    return _make
