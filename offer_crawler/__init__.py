"""Keyword-driven product offer crawler."""

from .version import __version__

__all__ = ["__version__"]
