"""Backing services package.

Contains the read-only competitor registry and the Redis-backed comparison
result cache.
"""
