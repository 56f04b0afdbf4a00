"""chordperm - permission resolution and authorization engine."""

__version__ = "0.1.0"
