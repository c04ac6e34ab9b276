"""Property-based tests using Hypothesis for tree invariants."""

from hypothesis import HealthCheck, given, settings, strategies as st

from zkmerkle.core.merkle_tree import MerkleTree, verify_merkle_proof
from zkmerkle.core.proofs import build_tree
from zkmerkle.crypto.field import MODULUS, Fq
from zkmerkle.models.schemas import MerkleProofRecord

field_values = st.integers(min_value=0, max_value=MODULUS - 1)
leaf_lists = st.lists(field_values, min_size=1, max_size=9)


class TestFieldProperties:
    """Property-based tests for field arithmetic."""

    @given(field_values, field_values)
    @settings(max_examples=100)
    def test_add_then_sub(self, a, b):
        assert Fq(value=a) + Fq(value=b) - Fq(value=b) == Fq(value=a)

    @given(st.integers(min_value=1, max_value=MODULUS - 1))
    @settings(max_examples=50)
    def test_inverse(self, a):
        assert Fq(value=a) * Fq(value=a).inverse() == Fq(value=1)

    @given(st.integers(min_value=0, max_value=2**256 - 1))
    @settings(max_examples=100)
    def test_bytes_reduce(self, raw):
        assert Fq.from_bytes_be(raw.to_bytes(32, "big")).value == raw % MODULUS


class TestTreeProperties:
    """Property-based tests for proof soundness."""

    @given(leaf_lists)
    @settings(max_examples=15, deadline=None, suppress_health_check=[HealthCheck.too_slow])
    def test_every_leaf_verifies(self, constants, values):
        tree = MerkleTree(constants)
        for value in values:
            tree.insert(value)
        tree.finalize()

        for index in range(len(values)):
            proof = tree.create_proof_at(index)
            assert tree.verify_proof(tree.root, proof)

    @given(leaf_lists, st.data())
    @settings(max_examples=15, deadline=None, suppress_health_check=[HealthCheck.too_slow])
    def test_tampered_sibling_fails(self, constants, values, data):
        tree = build_tree(values, depth=4, constants=constants)
        proof = tree.create_proof_at(data.draw(st.integers(0, len(values) - 1)))
        position = data.draw(st.integers(0, proof.depth - 1))
        delta = data.draw(st.integers(min_value=1, max_value=MODULUS - 1))

        proof.siblings[position] = proof.siblings[position] + Fq(value=delta)
        assert not verify_merkle_proof(tree.root, proof, constants)

    @given(leaf_lists)
    @settings(max_examples=10, deadline=None, suppress_health_check=[HealthCheck.too_slow])
    def test_shortcut_never_changes_root(self, constants, values):
        fast = build_tree(values, depth=4, constants=constants)
        slow = build_tree(values, depth=4, constants=constants, zero_subtree_shortcut=False)
        assert fast.root == slow.root

    @given(leaf_lists)
    @settings(max_examples=10, deadline=None, suppress_health_check=[HealthCheck.too_slow])
    def test_serialization_preserves_root(self, constants, values):
        tree = build_tree(values, depth=4, constants=constants)
        assert MerkleTree.deserialize(tree.serialize()).root == tree.root

    @given(leaf_lists)
    @settings(max_examples=10, deadline=None, suppress_health_check=[HealthCheck.too_slow])
    def test_json_record_preserves_proof(self, constants, values):
        tree = build_tree(values, depth=4, constants=constants)
        proof = tree.create_proof_at(0)
        record = MerkleProofRecord.model_validate_json(MerkleProofRecord.from_proof(proof).to_json())
        assert record.to_proof() == proof
