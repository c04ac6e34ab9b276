"""Tests for the Poseidon hash engine and its parameter generation."""

import pytest
from pydantic import ValidationError

from zkmerkle.crypto.field import MODULUS, Fq
from zkmerkle.crypto.grain import GrainLFSR
from zkmerkle.crypto.poseidon import (
    DOMAIN_TAG,
    Poseidon,
    PoseidonConstants,
    generate_constants,
    poseidon_hash,
    secp256k1_w3,
)


class TestGrainLFSR:
    """Tests for the constant generator."""

    def test_deterministic(self):
        a = GrainLFSR(field_size=256, width=3, rounds_f=8, rounds_p=57)
        b = GrainLFSR(field_size=256, width=3, rounds_f=8, rounds_p=57)
        assert [a.random_bits(64) for _ in range(4)] == [b.random_bits(64) for _ in range(4)]

    def test_parameters_change_stream(self):
        a = GrainLFSR(field_size=256, width=3, rounds_f=8, rounds_p=57)
        b = GrainLFSR(field_size=256, width=4, rounds_f=8, rounds_p=57)
        assert a.random_bits(128) != b.random_bits(128)

    def test_output_is_bits(self):
        grain = GrainLFSR(field_size=256, width=3, rounds_f=8, rounds_p=57)
        assert all(grain.next_bit() in (0, 1) for _ in range(200))

    def test_random_bits_width(self):
        grain = GrainLFSR(field_size=256, width=3, rounds_f=8, rounds_p=57)
        assert all(grain.random_bits(8) < 256 for _ in range(50))

    def test_rejection_sampling_below_modulus(self):
        grain = GrainLFSR(field_size=8, width=3, rounds_f=8, rounds_p=57)
        values = grain.field_elements(100, modulus=7, num_bits=8)
        assert len(values) == 100
        assert all(0 <= v < 7 for v in values)

    def test_seed_must_fit(self):
        with pytest.raises(ValueError):
            GrainLFSR(field_size=2**12, width=3, rounds_f=8, rounds_p=57)


class TestPoseidonConstants:
    """Tests for the width-3 parameter set."""

    def test_shape(self, constants):
        assert constants.width == 3
        assert constants.arity == 2
        assert constants.rounds_f == 8
        assert constants.rounds_p == 57
        assert constants.alpha == 5
        assert len(constants.round_constants) == (8 + 57) * 3
        assert len(constants.mds_matrix) == 3
        assert all(len(row) == 3 for row in constants.mds_matrix)

    def test_cached(self):
        assert secp256k1_w3() is secp256k1_w3()

    def test_values_in_field(self, constants):
        assert all(0 <= c.value < MODULUS for c in constants.round_constants)

    def test_mds_is_cauchy(self, constants):
        # Every entry of a Cauchy matrix is invertible, and 1/M[i][j]
        # satisfies x_i + y_j, so 1/M[i][j] - 1/M[i][k] is independent of i.
        inverses = [[m.inverse() for m in row] for row in constants.mds_matrix]
        for j in range(3):
            for k in range(3):
                diffs = {inverses[i][j] - inverses[i][k] for i in range(3)}
                assert len(diffs) == 1

    def test_rejects_wrong_constant_count(self, constants):
        with pytest.raises(ValidationError):
            PoseidonConstants(
                width=3,
                rounds_f=8,
                rounds_p=57,
                round_constants=constants.round_constants[:-1],
                mds_matrix=constants.mds_matrix,
            )

    def test_rejects_non_square_mds(self, constants):
        with pytest.raises(ValidationError):
            PoseidonConstants(
                width=3,
                rounds_f=8,
                rounds_p=57,
                round_constants=constants.round_constants,
                mds_matrix=constants.mds_matrix[:2],
            )

    def test_rejects_odd_full_rounds(self):
        with pytest.raises(ValidationError):
            PoseidonConstants(
                width=2,
                rounds_f=1,
                rounds_p=0,
                round_constants=[Fq(value=1), Fq(value=2)],
                mds_matrix=[[Fq(value=1), Fq(value=0)], [Fq(value=0), Fq(value=1)]],
            )

    def test_generation_is_deterministic(self):
        a = generate_constants(width=3, rounds_f=2, rounds_p=1)
        b = generate_constants(width=3, rounds_f=2, rounds_p=1)
        assert a == b


class TestPoseidonHash:
    """Tests for hashing behavior."""

    def test_reset_state(self, hasher):
        assert hasher.state == [Fq(value=DOMAIN_TAG), Fq.zero(), Fq.zero()]

    def test_deterministic(self, hasher, constants):
        nodes = (Fq(value=1), Fq(value=2))
        assert hasher.hash(nodes) == Poseidon(constants).hash(nodes)

    def test_reusable_after_hash(self, hasher):
        nodes = (Fq(value=1), Fq(value=2))
        first = hasher.hash(nodes)
        assert hasher.state == [Fq(value=DOMAIN_TAG), Fq.zero(), Fq.zero()]
        assert hasher.hash(nodes) == first

    def test_order_matters(self, hasher):
        assert hasher.hash((Fq(value=1), Fq(value=2))) != hasher.hash((Fq(value=2), Fq(value=1)))

    def test_domain_tag_matters(self, constants):
        nodes = (Fq(value=1), Fq(value=2))
        assert Poseidon(constants).hash(nodes) != Poseidon(constants, domain_tag=0).hash(nodes)

    def test_output_in_field(self, hasher):
        out = hasher.hash((Fq(value=MODULUS - 1), Fq(value=MODULUS - 2)))
        assert 0 <= out.value < MODULUS

    def test_zero_pair_is_not_zero(self, hasher):
        assert hasher.hash((Fq.zero(), Fq.zero())) != Fq.zero()

    def test_wrong_arity_rejected(self, hasher):
        with pytest.raises(ValueError):
            hasher.hash((Fq(value=1),))
        with pytest.raises(ValueError):
            hasher.hash((Fq(value=1), Fq(value=2), Fq(value=3)))

    def test_permute_changes_state(self, hasher):
        before = list(hasher.state)
        hasher.permute()
        assert hasher.state != before

    def test_clone_is_independent(self, hasher):
        twin = hasher.clone()
        twin.state[1] = Fq(value=42)
        assert hasher.state[1] == Fq.zero()
        assert twin.constants is hasher.constants

    def test_clone_hashes_identically(self, hasher):
        nodes = (Fq(value=5), Fq(value=6))
        assert hasher.clone().hash(nodes) == hasher.hash(nodes)

    def test_one_shot_helper(self, hasher):
        nodes = (Fq(value=5), Fq(value=6))
        assert poseidon_hash(nodes) == hasher.hash(nodes)
