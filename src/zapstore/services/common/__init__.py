"""Shared helpers for zapstore services."""

from .utils import dedup_and_sort


__all__ = ["dedup_and_sort"]
