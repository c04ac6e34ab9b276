#!/usr/bin/env python3
"""
Quick start guide for zk-merkle-tree.

Run this to see a complete workflow example.
"""

import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from zkmerkle.core.proofs import build_tree
from zkmerkle.models.schemas import AddressProofRecord, MerkleProofRecord
from zkmerkle.service import TreeService
from zkmerkle.utils.encoding import hex_to_field, leaves_to_bytes

ADDRESSES = [
    "0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed",
    "0xfB6916095ca1df60bB79Ce92cE3Ea74c37c5d359",
    "0xdbF03B407c01E7cD3CBea99509d93f8DDDC8C6FB",
]
DEPTH = 15


def main():
    """Run a simple example of building a tree and proving membership."""

    print("=" * 70)
    print("ZK-MERKLE-TREE QUICK START EXAMPLE")
    print("=" * 70)
    print()

    # Step 1: Build the tree
    print(f"Step 1: Build a depth-{DEPTH} tree over {len(ADDRESSES)} addresses")
    print("-" * 70)
    leaves = [hex_to_field(address) for address in ADDRESSES]
    tree = build_tree(leaves, DEPTH)
    print(f"✓ Tree finalized with {len(tree)} leaves (zero-padded)")
    print(f"  Root: {tree.root}")
    print()

    # Step 2: Prove membership
    print("Step 2: Prove that the second address is in the tree")
    print("-" * 70)
    proof = tree.create_proof(leaves[1])
    print(f"✓ Proof created with {proof.depth} siblings")
    print(f"  Path indices: {''.join(str(m) for m in proof.path_indices)}")
    print()

    # Step 3: Verify
    print("Step 3: Verify the proof against the root")
    print("-" * 70)
    print(f"✓ Valid: {tree.verify_proof(tree.root, proof)}")
    print()

    # Step 4: Export
    print("Step 4: Export as circuit input and as a proofs-file entry")
    print("-" * 70)
    record = MerkleProofRecord.from_proof(proof)
    entry = AddressProofRecord.from_proof(proof)
    print(f"  Record: {record.to_json()[:66]}...")
    print(f"  Address entry for {entry.address}")
    print()

    # Step 5: Serve proofs through a service handle
    print("Step 5: Serve proofs from a lock-guarded service handle")
    print("-" * 70)
    service = TreeService()
    root = service.initialize(leaves_to_bytes(leaves), DEPTH)
    print(f"✓ Service root matches: {root == str(tree.root)}")
    print(f"  State: {service.state().model_dump()}")
    print()

    print("=" * 70)
    print("✓ QUICK START COMPLETE")
    print("=" * 70)
    print()
    print("To write proofs for a CSV address list, run:")
    print("  zkmerkle save-proofs addresses.csv airdrop")
    print()


if __name__ == "__main__":
    try:
        main()
    except Exception as e:
        print(f"✗ Error: {e}", file=sys.stderr)
        import traceback
        traceback.print_exc()
        sys.exit(1)
