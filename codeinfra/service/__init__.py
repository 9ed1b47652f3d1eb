"""HTTP service exposing changelog generation and link checking."""

from .app import create_app, run_service

__all__ = ["create_app", "run_service"]
