# (c) Copyright Datacraft, 2026
"""Relationship-based authorization server."""

__version__ = "0.1.0"
