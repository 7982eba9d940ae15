"""Forage: progressive scene-graph inspection for design files."""

__version__ = "0.1.0"
