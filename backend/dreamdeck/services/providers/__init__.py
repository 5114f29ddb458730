"""Image provider implementations.

Each provider module implements the async generation pattern:
  POST create task → poll status → hand the result URL to the materializer
"""
from __future__ import annotations
