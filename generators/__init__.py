"""Synthetic inputs for demos and tests."""

from generators.mock_posts import generate_mock_posts

__all__ = ["generate_mock_posts"]
