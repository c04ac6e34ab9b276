"""Pytest configuration and fixtures."""

import pytest
import sys
from pathlib import Path

# Add src to path for imports
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from zkmerkle.core.merkle_tree import MerkleTree
from zkmerkle.crypto.field import Fq
from zkmerkle.crypto.poseidon import Poseidon, secp256k1_w3


@pytest.fixture(scope="session")
def constants():
    """Width-3 Poseidon constants, generated once per session."""
    return secp256k1_w3()


@pytest.fixture
def hasher(constants):
    """Fresh Poseidon instance for computing expected values."""
    return Poseidon(constants)


@pytest.fixture
def h(hasher):
    """Two-to-one compression used to spell out expected roots."""
    def _h(left, right):
        return hasher.hash((Fq(value=int(left)), Fq(value=int(right))))
    return _h


@pytest.fixture
def four_leaf_tree(constants):
    """Finalized tree over leaves [1, 2, 3, 4]."""
    tree = MerkleTree(constants)
    for value in (1, 2, 3, 4):
        tree.insert(Fq(value=value))
    tree.finalize()
    return tree


@pytest.fixture
def temp_db(tmp_path):
    """Fixture providing a temporary database path."""
    return tmp_path / "test.db"


@pytest.fixture(scope="session")
def test_data():
    """Fixture providing test data."""
    return {
        "addresses": [
            "0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed",
            "0xfB6916095ca1df60bB79Ce92cE3Ea74c37c5d359",
            "0xdbF03B407c01E7cD3CBea99509d93f8DDDC8C6FB",
        ],
        "sample_tree_depth": 4,
    }
