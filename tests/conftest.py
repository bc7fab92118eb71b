#!/usr/bin/env python3
"""
Uma Reload Test Configuration - PyTest Configuration and Fixtures

Shared fixtures: temporary SQLite source files and an in-memory SQLite
destination implementing the destination adapter interface.
"""

import os
import sqlite3
import sys
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from destination_fakes import SQLiteDestination
from config.settings import ReloadConfig


def make_source(path: Path, script: str) -> Path:
    """Create a SQLite source database from a script"""
    path.parent.mkdir(parents=True, exist_ok=True)
    with sqlite3.connect(path) as conn:
        conn.executescript(script)
    conn.close()
    return path


@pytest.fixture
def game_dir(tmp_path):
    """Local game install with an empty master.mdb and meta"""
    directory = tmp_path / "umamusume"
    make_source(directory / "master" / "master.mdb", "")
    make_source(directory / "meta", "")
    return directory


@pytest.fixture
def dev_config(game_dir, tmp_path):
    """Development config reading sources from the local game install"""
    return ReloadConfig(environment="Development", game_data_dir=game_dir, work_dir=tmp_path,
                        download_concurrency=4)


@pytest.fixture
def destination():
    dest = SQLiteDestination("mysql")
    yield dest
    dest.dispose()


def pytest_configure(config):
    """Configure custom pytest markers"""
    config.addinivalue_line(
        "markers", "unit: Unit tests that test individual components"
    )
    config.addinivalue_line(
        "markers", "integration: Tests that run the whole reload pipeline"
    )
