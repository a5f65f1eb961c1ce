"""KraftCloud provider: reconciles Instance records against KraftCloud."""

__version__ = "0.1.0"
