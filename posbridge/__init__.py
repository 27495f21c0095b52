"""posbridge: ESC/POS image printing over raw TCP."""

__version__ = "0.1.0"
