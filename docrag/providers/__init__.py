"""Concrete embedding and vector-store backends."""
