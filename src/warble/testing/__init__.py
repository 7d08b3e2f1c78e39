"""Testing utilities for warble applications."""

from warble.testing.client import TestClient

__all__ = ["TestClient"]
