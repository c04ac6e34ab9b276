"""HTTP surface over the tree service."""
