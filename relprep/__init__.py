"""Prepare release pull requests for versioned Cargo packages."""

__version__ = "0.1.0"
