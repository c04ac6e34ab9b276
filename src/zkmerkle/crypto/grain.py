"""
Grain LFSR used to derive Poseidon round constants and MDS matrices.

This follows the parameter generation procedure published with the Poseidon
paper (https://eprint.iacr.org/2019/458, Appendix F): an 80-bit Grain
shift register seeded with the instance parameters, clocked 160 times before
use, and read in self-shrinking mode.
"""

from collections import deque
from typing import List

STATE_BITS = 80
WARMUP_CLOCKS = 160

FIELD_TYPE_PRIME = 1
SBOX_TYPE_POWER = 0


class GrainLFSR:
    """Deterministic bit source for a given Poseidon instance."""

    def __init__(
        self,
        field_size: int,
        width: int,
        rounds_f: int,
        rounds_p: int,
        field_type: int = FIELD_TYPE_PRIME,
        sbox_type: int = SBOX_TYPE_POWER,
    ):
        seed = (
            format(field_type, "02b")
            + format(sbox_type, "04b")
            + format(field_size, "012b")
            + format(width, "012b")
            + format(rounds_f, "010b")
            + format(rounds_p, "010b")
            + "1" * 30
        )
        if len(seed) != STATE_BITS:
            raise ValueError("Grain seed parameters do not fit in 80 bits")

        self._state = deque((int(bit) for bit in seed), maxlen=STATE_BITS)
        for _ in range(WARMUP_CLOCKS):
            self._clock()

    def _clock(self) -> int:
        """Advance the register by one step and return the new bit."""
        s = self._state
        new_bit = s[62] ^ s[51] ^ s[38] ^ s[23] ^ s[13] ^ s[0]
        # maxlen drops the oldest bit
        s.append(new_bit)
        return new_bit

    def next_bit(self) -> int:
        """
        Self-shrinking output: clock in pairs, emit the second bit only when
        the first one is set.
        """
        while True:
            control = self._clock()
            bit = self._clock()
            if control:
                return bit

    def random_bits(self, num_bits: int) -> int:
        """Read `num_bits` output bits as a big-endian integer."""
        value = 0
        for _ in range(num_bits):
            value = (value << 1) | self.next_bit()
        return value

    def field_elements(self, count: int, modulus: int, num_bits: int) -> List[int]:
        """Rejection-sample `count` integers below `modulus`."""
        values = []
        while len(values) < count:
            candidate = self.random_bits(num_bits)
            if candidate < modulus:
                values.append(candidate)
        return values
