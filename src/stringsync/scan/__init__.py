"""Directory scanning for resource files."""

from .scanner import DirectoryAccessFailure, ScanResult, TreeScanner

__all__ = ["DirectoryAccessFailure", "ScanResult", "TreeScanner"]
