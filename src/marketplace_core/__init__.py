"""Marketplace lifecycle core: transition guard, audit log and worker matching."""

__version__ = "0.1.0"
