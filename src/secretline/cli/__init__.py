"""Secretline command-line interface."""

from .main import app, main

__all__ = ["main", "app"]
