"""CLI module for the Auth0 to WorkOS migration."""

from .main import cli, main

__all__ = ["cli", "main"]
