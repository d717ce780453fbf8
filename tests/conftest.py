"""
Shared fixtures for the EDM decoder tests
"""

import os
import sys

import pytest

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import datfile


@pytest.fixture
def single_engine_file():
    """One flight, single engine, old checksums, two data records"""
    return datfile.build_file(
        model=700, flags=datfile.FLAGS_4CYL, version=292,
        flights=[(12, datfile.DATE, datfile.TIME, 6, [
            datfile.record({0: 5, 8: 10}),
            datfile.record({0: 3, 8: 0}, signs=[0]),
        ])])


@pytest.fixture
def new_checksum_file():
    """Two flights written by a firmware using the new checksum"""
    return datfile.build_file(
        model=830, flags=datfile.FLAGS_4CYL, version=412, new=True,
        flights=[
            (1, datfile.DATE, datfile.TIME, 6, [datfile.record({0: 5}, new=True), datfile.record({1: 7}, repeat=2, new=True)]),
            (2, datfile.DATE, datfile.TIME, 6, [datfile.record({2: 1, 3: 2}, signs=[3], new=True)]),
        ])
