"""m2audit: audit and prune the local Maven artifact cache.

This package provides a Click-based CLI that reconciles ~/.m2/repository
against the dependencies your projects actually use. See `m2audit --help`
for details.
"""
