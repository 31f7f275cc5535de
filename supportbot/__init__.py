"""Knowledge-grounded customer service chat backend."""

__version__ = "1.0.0"
