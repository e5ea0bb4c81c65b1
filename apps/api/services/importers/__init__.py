"""Upstream clip normalization for catalog imports."""
