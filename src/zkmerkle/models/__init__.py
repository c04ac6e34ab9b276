"""Proof record and API data models."""
