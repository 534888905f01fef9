"""Command-line interface package for the review tooling."""

from .app import build_parser, configure_logging, create_service, main, run

__all__ = [
    "build_parser",
    "configure_logging",
    "create_service",
    "main",
    "run",
]
