"""
Poseidon permutation over the secp256k1 base field.

The design is based on the paper "POSEIDON: A New Hash Function for
Zero-Knowledge Proof Systems" (https://eprint.iacr.org/2019/458).

The tree uses a width-3 instance: one capacity element holding a domain
separation tag and two rate elements holding the children of a node. The
output of a compression is the first rate element after the permutation.
"""

import copy
from functools import lru_cache
from typing import List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .field import MODULUS, MODULUS_BITS, Fq
from .grain import GrainLFSR

# =================================================================
# Poseidon Parameter Definitions
# =================================================================

S_BOX_DEGREE = 5
"""
The S-box exponent `alpha`.

For fields where `gcd(alpha, p-1) = 1`, `x -> x^alpha` is a permutation.

The secp256k1 base field has `p = 1 mod 3`, so the cube map is not a
permutation there and the smallest usable exponent is 5.
"""

DOMAIN_TAG = 3
"""Capacity element loaded before every Merkle node compression."""


class PoseidonConstants(BaseModel):
    """Parameters for a specific Poseidon instance."""

    model_config = ConfigDict(frozen=True)

    width: int = Field(gt=1, description="The size of the state (t).")
    rounds_f: int = Field(gt=0, description="Total number of 'full' rounds.")
    rounds_p: int = Field(ge=0, description="Total number of 'partial' rounds.")
    alpha: int = Field(default=S_BOX_DEGREE, gt=1, description="The S-box exponent.")
    round_constants: List[Fq] = Field(
        min_length=1,
        description="The flat list of constants, `width` per round.",
    )
    mds_matrix: List[List[Fq]] = Field(
        min_length=1,
        description="The `width x width` mixing matrix.",
    )

    @model_validator(mode="after")
    def check_lengths(self) -> "PoseidonConstants":
        """Ensures vector lengths match the configuration."""
        if self.rounds_f % 2 != 0:
            raise ValueError("Number of full rounds must be even.")

        expected_constants = (self.rounds_f + self.rounds_p) * self.width
        if len(self.round_constants) != expected_constants:
            raise ValueError("Incorrect number of round constants provided.")

        if len(self.mds_matrix) != self.width or any(
            len(row) != self.width for row in self.mds_matrix
        ):
            raise ValueError("MDS matrix must be width x width.")

        return self

    @property
    def arity(self) -> int:
        """Number of children compressed per call."""
        return self.width - 1


def _cauchy_matrix(grain: GrainLFSR, width: int, num_bits: int) -> List[List[Fq]]:
    """
    Sample a Cauchy matrix M[i][j] = 1 / (x_i + y_j).

    The 2 * width samples must be pairwise distinct and no x_i + y_j may
    vanish, otherwise a fresh set is drawn.
    """
    while True:
        samples = [Fq(value=grain.random_bits(num_bits)) for _ in range(2 * width)]
        if len(set(samples)) != len(samples):
            continue

        xs, ys = samples[:width], samples[width:]
        if any((x + y).value == 0 for x in xs for y in ys):
            continue

        return [[(x + y).inverse() for y in ys] for x in xs]


def generate_constants(
    width: int,
    rounds_f: int,
    rounds_p: int,
    alpha: int = S_BOX_DEGREE,
    modulus: int = MODULUS,
    num_bits: int = MODULUS_BITS,
) -> PoseidonConstants:
    """
    Derive round constants and the MDS matrix from the Grain LFSR.

    Round constants are drawn first, then the matrix, from the same stream.
    """
    grain = GrainLFSR(field_size=num_bits, width=width, rounds_f=rounds_f, rounds_p=rounds_p)

    num_constants = (rounds_f + rounds_p) * width
    round_constants = [
        Fq(value=c) for c in grain.field_elements(num_constants, modulus, num_bits)
    ]
    mds_matrix = _cauchy_matrix(grain, width, num_bits)

    return PoseidonConstants(
        width=width,
        rounds_f=rounds_f,
        rounds_p=rounds_p,
        alpha=alpha,
        round_constants=round_constants,
        mds_matrix=mds_matrix,
    )


@lru_cache(maxsize=None)
def secp256k1_w3() -> PoseidonConstants:
    """Width-3 constants (arity 2) for 128-bit security over secp256k1's base field."""
    return generate_constants(width=3, rounds_f=8, rounds_p=57)


class Poseidon:
    """
    A reusable Poseidon hashing instance.

    The instance owns a mutable state and is therefore not safe to share
    between threads. Use `clone()` to give every concurrent caller its own
    scratch state; the constants are shared read-only.
    """

    def __init__(self, constants: PoseidonConstants, domain_tag: int = DOMAIN_TAG):
        self.constants = constants
        self.domain_tag = domain_tag
        self.width = constants.width

        # The hot loop works on raw residues.
        self._round_constants = [c.value for c in constants.round_constants]
        self._mds = [[m.value for m in row] for row in constants.mds_matrix]

        self.state: List[Fq] = []
        self.reset()

    def reset(self) -> None:
        """Restore the state to [domain_tag, 0, ..., 0]."""
        self.state = [Fq(value=self.domain_tag)] + [Fq.zero()] * (self.width - 1)

    def clone(self) -> "Poseidon":
        """Independent copy sharing the immutable constants."""
        twin = copy.copy(self)
        twin.state = list(self.state)
        return twin

    def _mix(self, state: List[int]) -> List[int]:
        """Multiply the state by the MDS matrix."""
        return [sum(m * s for m, s in zip(row, state)) % MODULUS for row in self._mds]

    def permute(self) -> None:
        """
        Apply the full Poseidon permutation to the state in place.

        The permutation follows the structure:
        Full Rounds -> Partial Rounds -> Full Rounds
        """
        constants = self.constants
        alpha = constants.alpha
        width = self.width
        round_constants = self._round_constants
        half_rounds_f = constants.rounds_f // 2

        state = [s.value for s in self.state]
        const_idx = 0

        # 1. First Half of Full Rounds (R_F / 2)
        for _r in range(half_rounds_f):
            state = [(s + round_constants[const_idx + i]) % MODULUS for i, s in enumerate(state)]
            const_idx += width
            state = [pow(s, alpha, MODULUS) for s in state]
            state = self._mix(state)

        # 2. Partial Rounds (R_P)
        for _r in range(constants.rounds_p):
            state = [(s + round_constants[const_idx + i]) % MODULUS for i, s in enumerate(state)]
            const_idx += width
            # Only the first element goes through the S-box.
            state[0] = pow(state[0], alpha, MODULUS)
            state = self._mix(state)

        # 3. Second Half of Full Rounds (R_F / 2)
        for _r in range(half_rounds_f):
            state = [(s + round_constants[const_idx + i]) % MODULUS for i, s in enumerate(state)]
            const_idx += width
            state = [pow(s, alpha, MODULUS) for s in state]
            state = self._mix(state)

        self.state = [Fq(value=s) for s in state]

    def hash(self, nodes: Sequence[Fq]) -> Fq:
        """
        Compress exactly `width - 1` nodes into one element.

        The nodes are loaded into the rate part of the state, the state is
        permuted, and the instance is reset for reuse.
        """
        if len(nodes) != self.width - 1:
            raise ValueError(f"Expected {self.width - 1} nodes, got {len(nodes)}")

        for i, node in enumerate(nodes):
            self.state[i + 1] = node

        self.permute()
        out = self.state[1]

        self.reset()
        return out


def poseidon_hash(nodes: Sequence[Fq], constants: Optional[PoseidonConstants] = None) -> Fq:
    """One-shot compression on a fresh instance."""
    return Poseidon(constants or secp256k1_w3()).hash(nodes)
