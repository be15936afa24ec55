"""Synchronization of target files against a base file."""

from .merger import MergePlan, PlannedEntry, Provenance, Synchronizer

__all__ = ["MergePlan", "PlannedEntry", "Provenance", "Synchronizer"]
