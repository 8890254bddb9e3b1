"""Command line interface for signalwatch."""

from .main import app, create_app, run

__all__ = ["app", "create_app", "run"]
