"""Cryptographic primitives module"""

from zkmerkle.crypto.field import Fq, MODULUS, FIELD_BYTES
from zkmerkle.crypto.poseidon import (
    Poseidon,
    PoseidonConstants,
    generate_constants,
    poseidon_hash,
    secp256k1_w3,
)

__all__ = [
    'Fq',
    'MODULUS',
    'FIELD_BYTES',
    'Poseidon',
    'PoseidonConstants',
    'generate_constants',
    'poseidon_hash',
    'secp256k1_w3',
]
