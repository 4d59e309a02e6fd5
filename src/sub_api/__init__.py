"""Per-turn annotation pipeline: run analysis tasks on chat turns via a generation service."""

__version__ = "0.1.0"
