#!/usr/bin/env python3
"""
Cache key generation for analysis requests.

Produces a deterministic fingerprint of normalized selections combined with a
coarse time window, so equivalent requests share a cache entry and entries age
out of relevance even before their TTL expires. Hashing is a plain 32-bit
string hash rendered in base36; it is not security sensitive.
"""

import json
import logging
import time
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)

CACHE_WINDOW_SECONDS = 300  # 5 minutes
MAX_KEY_LENGTH = 1000
_BASE36 = '0123456789abcdefghijklmnopqrstuvwxyz'
_MASK = 0xFFFFFFFF

# Most significant fields for the reduced fallback key
FALLBACK_FIELDS = ('energy', 'soreness', 'focus')


def _to_base36(value: int) -> str:
    if value == 0:
        return '0'
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return ''.join(reversed(digits))


class KeyGenerator:
    """Builds and inspects cache keys for analysis requests."""

    def __init__(self, window_seconds: int = CACHE_WINDOW_SECONDS, clock: Callable[[], float] = time.time):
        """
        Initialize key generator.

        Args:
            window_seconds: Width of the time bucket folded into every key
            clock: Source of the current time in epoch seconds
        """
        self.window_seconds = window_seconds
        self._clock = clock

    def fingerprint(self, selections: Dict[str, Any], fitness_level_hint: Optional[str] = None) -> str:
        """
        Generate a cache key for a set of selections.

        Never raises; falls back to a reduced key when the selections
        cannot be serialized.
        """
        try:
            normalized = self.normalize(selections)
            key_data = {
                'selections': normalized,
                'fitness_level': fitness_level_hint or 'unknown',
                'cache_window': self._current_window(),
                'selections_hash': self._hash_object(normalized)
            }
            key = self._hash_object(key_data)
            logger.debug(f"Generated cache key {key} for {len(normalized)} selection fields")
            return key
        except Exception as e:
            logger.warning(f"Cache key generation failed, using fallback key: {e}")
            return self._fallback_key(selections, fitness_level_hint)

    def fingerprint_context(self, context: Any) -> str:
        """Generate a key that also covers environment and assistance level."""
        try:
            selections = context.current_selections or {}
            profile = context.user_profile
            environment = context.environmental_factors or {}
            key_data = {
                'selections': self.normalize(selections),
                'fitness_level': getattr(profile, 'fitness_level', None) or 'unknown',
                'time_of_day': environment.get('time_of_day'),
                'location': environment.get('location'),
                'ai_assistance_level': (context.preferences or {}).get('ai_assistance_level', 'standard'),
                'cache_window': self._current_window()
            }
            return self._hash_object(key_data)
        except Exception as e:
            logger.warning(f"Context key generation failed, using fallback key: {e}")
            selections = getattr(context, 'current_selections', None) or {}
            profile = getattr(context, 'user_profile', None)
            return self._fallback_key(selections, getattr(profile, 'fitness_level', None))

    def partial_key(self, partial_selections: Dict[str, Any]) -> str:
        """Generate a key for a partial selection update."""
        try:
            normalized = self.normalize(partial_selections)
            return f"partial_{self._hash_object(normalized)}_{self._current_window()}"
        except Exception as e:
            logger.warning(f"Partial key generation failed, using fallback key: {e}")
            return self._fallback_key(partial_selections)

    def domain_key(self, domain: str, selections: Dict[str, Any], fitness_level: Optional[str] = None) -> str:
        """Generate a key scoped to a single domain analyzer."""
        return f"{domain}:{self.fingerprint(selections, fitness_level)}"

    def normalize(self, selections: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        """Drop empty fields and sort list values, at any depth, so field order never matters."""
        return {
            name: self._normalize_value(value)
            for name, value in (selections or {}).items()
            if value is not None
        }

    def _normalize_value(self, value: Any, active: frozenset = frozenset()) -> Any:
        if not isinstance(value, (dict, list, tuple, set, frozenset)):
            return value
        if id(value) in active:
            raise ValueError("Circular reference detected")
        active = active | {id(value)}

        if isinstance(value, dict):
            return {name: self._normalize_value(item, active) for name, item in value.items()}
        items = [self._normalize_value(item, active) for item in value]
        return sorted(items, key=lambda item: json.dumps(item, sort_keys=True, default=str))

    def validate_key(self, key: Any) -> bool:
        """Check that a key is a non-empty, length-bounded string."""
        return isinstance(key, str) and 0 < len(key) < MAX_KEY_LENGTH

    def parse_key(self, key: Any) -> Dict[str, Any]:
        """Return format information about a key."""
        if not self.validate_key(key):
            return {'is_valid': False}
        return {
            'is_valid': True,
            'info': {
                'key_length': len(key),
                'key_prefix': key[:8],
                'estimated_timestamp': self._current_window()
            }
        }

    def _current_window(self) -> int:
        now = int(self._clock())
        return (now // self.window_seconds) * self.window_seconds

    def _hash_object(self, obj: Any) -> str:
        # sort_keys makes dict ordering irrelevant; circular input raises ValueError
        return self._hash_string(json.dumps(obj, sort_keys=True, separators=(',', ':')))

    def _hash_string(self, text: str) -> str:
        h = 0
        content_hash = 0
        position_hash = 0
        for index, char in enumerate(text):
            code = ord(char)
            h = (h * 31 + code) & _MASK
            content_hash += code
            position_hash = (position_hash + code * (index + 1)) & _MASK
        length_hash = len(text) * 17
        final_hash = (h + length_hash + content_hash + position_hash) & _MASK
        return _to_base36(final_hash).rjust(6, '0')

    def _fallback_key(self, selections: Any, fitness_level: Optional[str] = None) -> str:
        try:
            source = selections if isinstance(selections, dict) else {}
            fallback_data = {'window': self._current_window(), 'fitness_level': fitness_level or 'unknown'}
            for name in FALLBACK_FIELDS:
                value = source.get(name)
                if isinstance(value, (list, tuple, set, frozenset)):
                    value = sorted(str(v) for v in value)
                elif value is not None and not isinstance(value, (str, int, float, bool)):
                    value = str(type(value).__name__)
                fallback_data[name] = value
            return self._hash_object(fallback_data)
        except Exception as e:
            logger.error(f"Fallback key generation failed: {e}")
            return f"fallback_{int(self._clock() * 1000)}"
