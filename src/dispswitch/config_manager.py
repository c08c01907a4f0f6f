"""Configuration management: persist, add, rename, remove and reorder saved configurations."""

from __future__ import annotations

import dataclasses
import json
import logging
from pathlib import Path

from .canonical import identify
from .exceptions import StoreError
from .models import DisplayState, SavedConfiguration
from .utils import configs_path, write_json

log = logging.getLogger(__name__)

STORE_VERSION = 1


class JsonConfigStore:
    """Ordered list of saved configurations kept in a single JSON file."""

    def __init__(self, path: Path | None = None) -> None:
        self._path = path or configs_path()

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> list[SavedConfiguration]:
        """Read every stored configuration. A missing file is an empty list."""
        if not self._path.exists():
            return []
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise StoreError(f"cannot read {self._path}: {e}") from e

        # Older releases stored the bare list
        entries = data.get("configs", []) if isinstance(data, dict) else data
        if not isinstance(entries, list):
            raise StoreError(f"{self._path}: expected a list of configurations")
        try:
            return [SavedConfiguration.from_dict(e) for e in entries]
        except (ValueError, TypeError, AttributeError) as e:
            raise StoreError(f"{self._path}: malformed configuration: {e}") from e

    def save(self, configs: list[SavedConfiguration]) -> None:
        """Replace the stored list."""
        data = {"version": STORE_VERSION, "configs": [c.to_dict() for c in configs]}
        try:
            write_json(self._path, data)
        except OSError as e:
            raise StoreError(f"cannot write {self._path}: {e}") from e


class ConfigManager:
    """Saved configurations backed by a store.

    Every change reloads the full list, modifies it and writes it back.  The
    cached list is only replaced once the write has succeeded.
    """

    def __init__(self, store: JsonConfigStore | None = None) -> None:
        self._store = store or JsonConfigStore()
        self._configs: list[SavedConfiguration] | None = None

    @property
    def configs(self) -> list[SavedConfiguration]:
        """Stored configurations in order (loaded on first access)."""
        if self._configs is None:
            self._configs = self._store.load()
        return list(self._configs)

    def reload(self) -> list[SavedConfiguration]:
        self._configs = self._store.load()
        return list(self._configs)

    def get(self, name: str) -> SavedConfiguration | None:
        """Return the first configuration called *name*."""
        for config in self.configs:
            if config.name == name:
                return config
        return None

    def _commit(self, configs: list[SavedConfiguration]) -> None:
        self._store.save(configs)
        self._configs = configs

    @staticmethod
    def _index_of(configs: list[SavedConfiguration], config: SavedConfiguration) -> int:
        for i, c in enumerate(configs):
            if c == config:
                return i
        raise KeyError(config.name)

    def add(self, name: str, state: DisplayState) -> SavedConfiguration:
        """Capture *state* under *name* and append it to the list."""
        name = name.strip()
        if not name:
            raise ValueError("configuration name must not be empty")
        configs = self._store.load()
        _, config = identify(state)
        config.name = name
        configs.append(config)
        self._commit(configs)
        log.info("Saved configuration %r (hash %d)", name, config.hash)
        return config

    def rename(self, config: SavedConfiguration, new_name: str) -> SavedConfiguration:
        """Rename a stored configuration; layout and hash are untouched."""
        new_name = new_name.strip()
        if not new_name:
            raise ValueError("configuration name must not be empty")
        configs = self._store.load()
        i = self._index_of(configs, config)
        renamed = dataclasses.replace(configs[i], name=new_name)
        configs[i] = renamed
        self._commit(configs)
        log.info("Renamed configuration %r to %r", config.name, new_name)
        return renamed

    def remove(self, config: SavedConfiguration) -> None:
        """Delete a stored configuration."""
        configs = self._store.load()
        del configs[self._index_of(configs, config)]
        self._commit(configs)
        log.info("Removed configuration %r", config.name)

    def reorder(self, new_order: list[SavedConfiguration]) -> None:
        """Store the list in *new_order*, which must be a permutation of it."""
        configs = self._store.load()
        if len(new_order) != len(configs):
            raise ValueError("new order must list every stored configuration exactly once")
        remaining = list(configs)
        ordered: list[SavedConfiguration] = []
        for config in new_order:
            try:
                ordered.append(remaining.pop(self._index_of(remaining, config)))
            except KeyError:
                raise ValueError(f"configuration {config.name!r} is not stored") from None
        self._commit(ordered)
        log.info("Reordered %d configuration(s)", len(ordered))
