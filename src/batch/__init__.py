"""Logical batch time model.

This module defines batch identifiers and the batchers that map
physical epoch-millisecond timestamps onto them.
"""
