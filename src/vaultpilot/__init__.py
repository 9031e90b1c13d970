"""vaultpilot: a tool-using chat assistant for a folder of notes."""

__version__ = "0.1.0"

__all__ = ["__version__"]
