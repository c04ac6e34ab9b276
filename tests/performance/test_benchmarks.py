"""Performance benchmarking suite for tree construction and proofs."""

import time
from statistics import mean, stdev

import pytest

from zkmerkle.core.merkle_tree import MerkleTree
from zkmerkle.core.proofs import build_tree, get_proofs
from zkmerkle.crypto.field import Fq
from zkmerkle.crypto.poseidon import Poseidon


class PerformanceBenchmark:
    """Benchmarking harness for hashing and tree operations."""

    def __init__(self, name: str, iterations: int = 10):
        self.name = name
        self.iterations = iterations
        self.times = []

    def __enter__(self):
        self.start = time.perf_counter()
        return self

    def __exit__(self, *args):
        elapsed = time.perf_counter() - self.start
        self.times.append(elapsed)

    def report(self):
        """Print benchmark results."""
        if not self.times:
            return

        avg = mean(self.times)
        min_time = min(self.times)
        max_time = max(self.times)
        std_dev = stdev(self.times) if len(self.times) > 1 else 0

        print(f"\n{'='*70}")
        print(f"Benchmark: {self.name}")
        print(f"{'='*70}")
        print(f"Iterations:     {len(self.times)}")
        print(f"Average Time:   {avg*1000:.2f} ms")
        print(f"Min Time:       {min_time*1000:.2f} ms")
        print(f"Max Time:       {max_time*1000:.2f} ms")
        print(f"Std Dev:        {std_dev*1000:.2f} ms")
        print(f"Throughput:     {1/avg:.2f} ops/sec")

        return {
            "name": self.name,
            "iterations": len(self.times),
            "avg_ms": avg * 1000,
            "min_ms": min_time * 1000,
            "max_ms": max_time * 1000,
            "std_dev_ms": std_dev * 1000,
            "throughput_ops_sec": 1 / avg,
        }


@pytest.mark.benchmark
class TestPerformanceBenchmarks:
    """Performance benchmarks for core operations."""

    def test_poseidon_compression(self, constants):
        """Benchmark one two-to-one Poseidon compression."""
        hasher = Poseidon(constants)
        benchmark = PerformanceBenchmark("Poseidon Compression", iterations=200)

        for i in range(benchmark.iterations):
            with benchmark:
                hasher.hash((Fq(value=i), Fq(value=i + 1)))

        stats = benchmark.report()
        assert stats["avg_ms"] < 50

    def test_sparse_depth_15_tree(self, constants):
        """Benchmark the typical case: a few leaves in a depth-15 tree."""
        leaves = [Fq(value=v) for v in range(1, 101)]
        benchmark = PerformanceBenchmark("Depth-15 Tree, 100 Leaves", iterations=3)

        for _ in range(benchmark.iterations):
            with benchmark:
                build_tree(leaves, 15, constants)

        stats = benchmark.report()
        # Only the populated edge is hashed, not 2^15 - 1 nodes.
        assert stats["avg_ms"] < 30_000

    def test_dense_tree(self, constants):
        """Benchmark a fully populated depth-8 tree."""
        leaves = [Fq(value=v) for v in range(1, 257)]
        benchmark = PerformanceBenchmark("Dense Depth-8 Tree", iterations=3)

        for _ in range(benchmark.iterations):
            with benchmark:
                build_tree(leaves, 8, constants)

        benchmark.report()

    def test_proof_generation(self, constants):
        """Benchmark proof derivation by value."""
        tree = build_tree([Fq(value=v) for v in range(1, 65)], 10, constants)
        benchmark = PerformanceBenchmark("Merkle Proof Generation", iterations=64)

        for i in range(benchmark.iterations):
            with benchmark:
                tree.create_proof(Fq(value=i + 1))

        stats = benchmark.report()
        assert stats["avg_ms"] < 10

    def test_proof_verification(self, constants):
        """Benchmark proof verification."""
        tree = build_tree([Fq(value=v) for v in range(1, 65)], 10, constants)
        proofs = [tree.create_proof_at(i) for i in range(64)]
        benchmark = PerformanceBenchmark("Merkle Proof Verification", iterations=len(proofs))

        for proof in proofs:
            with benchmark:
                assert tree.verify_proof(tree.root, proof)

        benchmark.report()

    def test_batch_proofs(self, constants):
        """Benchmark the end-to-end batch path."""
        leaves = list(range(1, 33))
        benchmark = PerformanceBenchmark("Batch Proofs, 32 Leaves", iterations=2)

        for _ in range(benchmark.iterations):
            with benchmark:
                proofs = get_proofs(leaves, 12, constants)

        benchmark.report()
        assert len(proofs) == 32

    def test_serialization(self, constants):
        """Benchmark serialize and deserialize of a depth-12 tree."""
        tree = build_tree([Fq(value=v) for v in range(1, 17)], 12, constants)
        benchmark = PerformanceBenchmark("Serialize + Deserialize", iterations=5)

        for _ in range(benchmark.iterations):
            with benchmark:
                restored = MerkleTree.deserialize(tree.serialize())

        benchmark.report()
        assert restored.root == tree.root


if __name__ == "__main__":
    # Run benchmarks manually
    pytest.main([__file__, "-v", "-m", "benchmark", "-s"])
