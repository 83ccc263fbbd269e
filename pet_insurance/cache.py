"""
Config cache module.

Keeps the parsed seed file in memory so startup and tests do not re-read
and re-parse the YAML on every call.
"""

import os
import yaml
from typing import Dict, Any, Optional
from threading import Lock

DEFAULT_SEED_FILE = os.path.join(os.path.dirname(__file__), "config", "seed.yaml")


class ConfigCache:
    """Thread-safe configuration cache."""

    def __init__(self, seed_file: Optional[str] = None):
        self._seed_file = seed_file
        self._seed_data: Optional[Dict[str, Any]] = None
        self._lock = Lock()

    @property
    def seed_file(self) -> str:
        return self._seed_file or os.getenv("SEED_FILE", DEFAULT_SEED_FILE)

    def get_seed_data(self) -> Dict[str, Any]:
        """Get cached seed data, loading from disk if not cached."""
        if self._seed_data is None:
            with self._lock:
                if self._seed_data is None:  # Double-check locking
                    with open(self.seed_file, 'r') as f:
                        self._seed_data = yaml.safe_load(f) or {}
        return self._seed_data

    def get_users(self) -> list:
        """Get seeded user accounts."""
        return self.get_seed_data().get("users", [])

    def get_pets(self) -> list:
        """Get seeded pets."""
        return self.get_seed_data().get("pets", [])

    def get_clinics(self) -> list:
        """Get seeded clinics."""
        return self.get_seed_data().get("clinics", [])


# Global cache instance
config_cache = ConfigCache()
