"""
FileMonitor: watch directories and announce file changes.

Provides both a CLI and library API for filtering filesystem events with
ignore rules and notifying a webhook or an email recipient about them.
"""

__version__ = "0.1.0"
