#!/usr/bin/env python3
"""
Result caching for the analysis core.

Provides request fingerprinting and a TTL + LRU result cache.
"""

from .key_generator import KeyGenerator
from .result_cache import ResultCache, CacheEntry

__all__ = [
    'KeyGenerator', 'ResultCache', 'CacheEntry'
]
