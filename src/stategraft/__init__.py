"""stategraft — rewrite and repair recorded infrastructure state graphs."""

__version__ = "0.3.0"
