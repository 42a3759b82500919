"""Process-wide configuration store for services.

Services contribute configuration fragments with ``add``; fragments are deep
merged into a single tree that is read back with dotted keys.

```python
store = get_config_store()
store.add({"storage": {"url": "memory://"}})
store.add({"storage": {"retries": 3}})
store.get("storage.retries")  # 3
```
"""

import copy
from collections.abc import Mapping
from functools import lru_cache
from typing import Any

from loguru import logger


def deep_merge(target: Mapping[str, Any], source: Mapping[str, Any]) -> dict[str, Any]:
    """Merge ``source`` into a copy of ``target``.

    Mappings are merged recursively, lists are concatenated and every other
    value of ``source`` replaces the value in ``target``. Neither input is
    modified.
    """
    result = copy.deepcopy(dict(target))

    for key, value in source.items():
        current = result.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            result[key] = deep_merge(current, value)
        elif isinstance(current, list) and isinstance(value, list):
            result[key] = current + copy.deepcopy(value)
        else:
            result[key] = copy.deepcopy(value)

    return result


class ConfigStore:
    """Deep-merged configuration tree."""

    def __init__(self) -> None:
        self._config: dict[str, Any] = {}

    def add(self, config: Mapping[str, Any]) -> None:
        """Merge a configuration fragment into the store.

        Args:
            config: The fragment. Anything but a mapping is reported and ignored.
        """
        if not isinstance(config, Mapping):
            logger.warning(f"Only mappings can be added to the config store, got: {type(config).__name__}")
            return

        self._config = deep_merge(self._config, config)

    def get(self, key: str, default: Any = None) -> Any:
        """Look up a value by dotted key, e.g. ``"storage.url"``.

        Returns:
            The value, or ``default`` if any part of the key is missing
        """
        result: Any = self._config

        for part in key.split("."):
            if not isinstance(result, Mapping) or part not in result:
                return default
            result = result[part]

        return result

    def clear(self) -> None:
        """Remove all configuration."""
        self._config = {}


@lru_cache
def get_config_store() -> ConfigStore:
    """Get the process-wide config store."""
    return ConfigStore()
