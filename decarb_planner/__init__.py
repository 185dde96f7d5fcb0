"""Decarbonization action-plan recommendation and funding allocation engine."""

__version__ = "0.1.0"
