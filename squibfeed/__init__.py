"""Client-side feed cache and pagination engine for Squibs."""

__version__ = "0.1.0"
