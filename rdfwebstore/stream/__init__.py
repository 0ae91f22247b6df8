"""Quad streams and stream stages."""
