"""Stateful tree service layer."""

from zkmerkle.service.facade import TreeService

__all__ = [
    "TreeService",
]
