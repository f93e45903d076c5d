#!/usr/bin/env python3
"""Local state file recording the managed addresses."""

import os
import tempfile
import threading
import yaml
from pathlib import Path
from typing import Dict, Any, List, Optional


class StateStore:
    """YAML file mapping resource names to their address ID and attributes.

    Layout::

        version: 1
        resources:
          web01:
            id: '123'
            attributes: {hostname: web01, ip_address: 10.0.0.5, ...}
    """

    VERSION = 1

    def __init__(self, path: str):
        self.path = Path(path)
        self._lock = threading.Lock()
        self._resources: Dict[str, Dict[str, Any]] = {}
        self.load()

    def load(self) -> None:
        if not self.path.exists():
            self._resources = {}
            return
        with open(self.path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}
        if data.get('version', self.VERSION) != self.VERSION:
            raise ValueError(f"Unsupported state file version in {self.path}: {data.get('version')}")
        self._resources = data.get('resources') or {}

    def save(self) -> None:
        """Write the state atomically (temp file + rename)."""
        with self._lock:
            data = {'version': self.VERSION, 'resources': self._resources}
            directory = self.path.parent
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=directory, prefix='.phpipam_addr.', suffix='.tmp')
            try:
                with os.fdopen(fd, 'w', encoding='utf-8') as f:
                    yaml.safe_dump(data, f, default_flow_style=False, sort_keys=True)
                os.replace(tmp_path, self.path)
            except BaseException:
                os.unlink(tmp_path)
                raise

    def names(self) -> List[str]:
        with self._lock:
            return sorted(self._resources)

    def get(self, name: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            entry = self._resources.get(name)
            return dict(entry) if entry else None

    def put(self, name: str, entry: Dict[str, Any]) -> None:
        """Record a resource; an entry without an ID removes it."""
        with self._lock:
            if entry.get('id'):
                self._resources[name] = entry
            else:
                self._resources.pop(name, None)

    def remove(self, name: str) -> None:
        with self._lock:
            self._resources.pop(name, None)

    def to_dict(self) -> Dict[str, Dict[str, Any]]:
        with self._lock:
            return {name: dict(entry) for name, entry in self._resources.items()}
