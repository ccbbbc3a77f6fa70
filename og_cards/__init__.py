"""Social card (Open Graph image) generation for documentation sites."""

__version__ = "0.1.0"
