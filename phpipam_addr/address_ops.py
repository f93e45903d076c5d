#!/usr/bin/env python3
"""Manifest-driven address operations: plan, apply, refresh and destroy."""

import logging
import yaml
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import List, Dict, Any, Optional, Tuple

from .errors import AddressError
from .phpipam_api import PhpIPAMAPIError
from .reconciler import Reconciler
from .resource import (ResourceData, new_address_data, create_resource, read_resource,
                       update_resource, delete_resource)
from .state import StateStore

logger = logging.getLogger(__name__)

ACTIONS = ('create', 'update', 'replace', 'delete', 'no-op', 'error')


@dataclass
class Change:
    """One planned action on a named resource."""
    name: str
    action: str
    data: ResourceData
    error: str = ''

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'name': self.name,
            'action': self.action,
            'id': self.data.id,
            'hostname': self.data.get('hostname'),
            'section': self.data.get('section'),
            'subnet': self.data.get('subnet'),
            'index': self.data.get('index'),
            'changed': ','.join(self.data.changed_fields()) if self.action in ('update', 'replace') else '',
            'error': self.error
        }


def load_manifest(path: str) -> Dict[str, Dict[str, Any]]:
    """Load the desired addresses from a YAML manifest.

    Args:
        path: Manifest file with an ``addresses`` mapping of name -> fields

    Returns:
        Dictionary of {name: desired fields}
    """
    manifest_file = Path(path)
    if not manifest_file.exists():
        raise FileNotFoundError(f"Manifest not found: {path}")

    with open(manifest_file, 'r', encoding='utf-8') as f:
        data = yaml.safe_load(f) or {}

    addresses = data.get('addresses') or {}
    if not isinstance(addresses, dict):
        raise ValueError(f"'addresses' in {path} must be a mapping of name to fields")

    manifest = {}
    for name, fields in addresses.items():
        fields = dict(fields or {})
        if fields.get('index') is not None:
            fields['index'] = str(fields['index'])
        # Fails early on unknown or computed fields
        new_address_data(fields).validate()
        manifest[str(name)] = fields
    return manifest


class AddressOperations:
    """High-level operations over all managed addresses."""

    def __init__(self, reconciler: Reconciler, store: StateStore):
        """Initialize AddressOperations.

        Args:
            reconciler: Reconciler bound to a phpIPAM client
            store: State store with the known resources
        """
        self.reconciler = reconciler
        self.store = store

    def _classify(self, d: ResourceData) -> str:
        if not d.id:
            return 'create'
        changed = d.changed_fields()
        if any(field in changed for field in ('section', 'subnet', 'index')):
            return 'replace'
        if changed:
            return 'update'
        return 'no-op'

    def plan(self, manifest: Dict[str, Dict[str, Any]]) -> List[Change]:
        """Work out what apply would do.

        Every known resource is re-read first, so addresses removed outside
        this tool are planned for creation again. A resource that cannot be
        read is planned as an error and left alone.

        Args:
            manifest: Desired addresses by name

        Returns:
            List of changes, manifest entries first, then deletions
        """
        changes = []
        for name, fields in manifest.items():
            d = new_address_data(fields, self.store.get(name))
            if d.id:
                try:
                    read_resource(d, self.reconciler)
                except (AddressError, PhpIPAMAPIError) as e:
                    logger.error(f"Reading {name} failed: {e}")
                    changes.append(Change(name, 'error', d, str(e)))
                    continue
            changes.append(Change(name, self._classify(d), d))

        for name in self.store.names():
            if name not in manifest:
                d = new_address_data({}, self.store.get(name))
                changes.append(Change(name, 'delete', d))
        return changes

    def _execute(self, change: Change) -> Tuple[str, bool, str]:
        d = change.data
        try:
            if change.action == 'create':
                create_resource(d, self.reconciler)
                message = f"Created {change.name}: {d.recorded('ip_address')} (ID {d.id})"
            elif change.action in ('update', 'replace'):
                update_resource(d, self.reconciler)
                message = f"Updated {change.name}: {d.recorded('ip_address')} (ID {d.id})"
            elif change.action == 'delete':
                delete_resource(d, self.reconciler)
                message = f"Deleted {change.name}"
            else:
                message = f"{change.name} is up to date"
            success = True
        except (AddressError, PhpIPAMAPIError, ValueError) as e:
            logger.error(f"{change.action} {change.name} failed: {e}")
            success, message = False, str(e)

        if change.action != 'no-op':
            self.store.put(change.name, d.to_state())
        return change.name, success, message

    def apply(self, manifest: Dict[str, Dict[str, Any]], parallelism: int = 1,
              dry_run: bool = False) -> List[Tuple[str, bool, str]]:
        """Converge phpIPAM to the manifest.

        Args:
            manifest: Desired addresses by name
            parallelism: Number of resources converged concurrently
            dry_run: If True, only show what would be done

        Returns:
            List of (name, success, message) tuples
        """
        changes = self.plan(manifest)

        failed = [(c.name, False, c.error) for c in changes if c.action == 'error']

        if dry_run:
            return failed + [(c.name, True, f"[DRY-RUN] Would {c.action} {c.name}")
                             for c in changes if c.action not in ('no-op', 'error')]

        # Record refreshed values even for resources that need no change
        for change in changes:
            if change.action == 'no-op':
                self.store.put(change.name, change.data.to_state())

        pending = [c for c in changes if c.action not in ('no-op', 'error')]
        if parallelism > 1 and len(pending) > 1:
            with ThreadPoolExecutor(max_workers=parallelism) as pool:
                results = list(pool.map(self._execute, pending))
        else:
            results = [self._execute(c) for c in pending]

        self.store.save()
        return failed + results

    def refresh(self) -> List[Dict[str, Any]]:
        """Re-read every known resource; forget those deleted in phpIPAM.

        Returns:
            List of resource dictionaries with a 'status' of ok or gone
        """
        rows = []
        for name in self.store.names():
            d = new_address_data({}, self.store.get(name))
            read_resource(d, self.reconciler)
            rows.append(self._row(name, d.to_state(), 'ok' if d.id else 'gone'))
            self.store.put(name, d.to_state())
        self.store.save()
        return rows

    def destroy(self, names: Optional[List[str]] = None,
                dry_run: bool = False) -> List[Tuple[str, bool, str]]:
        """Delete managed addresses.

        Args:
            names: Resource names, all known resources if None
            dry_run: If True, only show what would be done

        Returns:
            List of (name, success, message) tuples
        """
        targets = names or self.store.names()
        results = []
        for name in targets:
            entry = self.store.get(name)
            if entry is None:
                results.append((name, False, f"{name} is not managed"))
                continue
            if dry_run:
                results.append((name, True, f"[DRY-RUN] Would delete {name} (ID {entry['id']})"))
                continue
            d = new_address_data({}, entry)
            results.append(self._execute(Change(name, 'delete', d)))
        if not dry_run:
            self.store.save()
        return results

    def list_resources(self, name: Optional[str] = None) -> List[Dict[str, Any]]:
        """Recorded resources as flat dictionaries."""
        resources = self.store.to_dict()
        if name is not None:
            resources = {name: resources[name]} if name in resources else {}
        return [self._row(n, entry) for n, entry in sorted(resources.items())]

    @staticmethod
    def _row(name: str, entry: Dict[str, Any], status: Optional[str] = None) -> Dict[str, Any]:
        row = {'name': name, 'id': entry.get('id', '')}
        row.update(entry.get('attributes') or {})
        if status:
            row['status'] = status
        return row
