"""Nexus PM - AI-assisted project management workspace."""

__version__ = "0.1.0"
