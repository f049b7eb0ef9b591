"""Pass/fail prediction pipeline for the Open University Learning Analytics Dataset."""

__version__ = "0.1.0"
