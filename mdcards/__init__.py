"""
Command-line interface for laying out Markdown documents on image cards.

This package exposes a :func:`main` function which orchestrates argument parsing
and delegates layout and painting to :mod:`cardkit.md_to_cards`.
"""

from .cli import main

__all__ = ["main"]
