"""RunVault - virtual folder hierarchy for event photos."""

__version__ = "0.1.0"
