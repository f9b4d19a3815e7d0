"""Clause segmentation, version diffing and conflict detection for Indonesian legal texts."""

__version__ = "0.1.0"
