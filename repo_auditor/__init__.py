"""Monorepo convention auditor backed by the GitHub contents API."""

__version__ = "0.1.0"
