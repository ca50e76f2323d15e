"""Utility functions for hashing operations."""

import hashlib


def calculate_bytes_hash(data: bytes, algorithm: str = "sha256") -> str:
    """Calculate hash of bytes data."""
    hasher = hashlib.new(algorithm)
    hasher.update(data)
    return hasher.hexdigest()
