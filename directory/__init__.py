"""Directory application for the healthcare directory backend.

This package contains the directory models, the faceted search services
and the public API routes that expose them.
"""
