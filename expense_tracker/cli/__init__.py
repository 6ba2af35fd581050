"""Command-line entry points for the expense tracker."""

from .main import build_parser, main

__all__ = ["build_parser", "main"]
