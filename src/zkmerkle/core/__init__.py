"""Merkle tree engine, persistence and batch helpers."""
