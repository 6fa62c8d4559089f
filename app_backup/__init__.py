"""Backup of Cloudways hosted applications selected by domain."""

__version__ = "1.0.0"
