"""
Dependency Audit Tool

A tool for auditing npm dependencies for staleness, low adoption and known vulnerabilities.
"""

__version__ = "0.1.0"

from .cli import main
from .resolver import resolve
from .risk_engine import assess

__all__ = ["main", "resolve", "assess"]
