"""Storage and version resolution layer.

This module resolves logical batches onto stored versions and commits
new versions through a pluggable versioned storage backend.
"""
