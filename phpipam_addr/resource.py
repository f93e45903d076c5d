#!/usr/bin/env python3
"""The phpipam_address resource: schema, resource data and lifecycle callbacks.

The callbacks follow the usual desired-state contract. ``get`` returns the
desired value of a field, ``set`` records a value observed in phpIPAM, and
``has_change`` tells whether the desired value differs from the last recorded
one. Every mutating callback ends with a read so the computed fields are
current.
"""

import logging
from typing import Dict, Any, List, Optional

from .errors import PartialUpdateError

logger = logging.getLogger(__name__)


ADDRESS_SCHEMA = {
    'hostname': dict(type='str', required=True),
    'section': dict(type='str', required=True),
    'subnet': dict(type='str', required=True),
    'index': dict(type='str', optional=True),
    'ip_address': dict(type='str', computed=True),
    'broadcast': dict(type='str', computed=True),
    'gateway': dict(type='str', computed=True),
    'bitmask': dict(type='str', computed=True),
}


def _normalize(value: Any) -> str:
    return '' if value is None else str(value)


class ResourceData:
    """Desired and recorded values of one resource instance."""

    def __init__(self, schema: Dict[str, Dict[str, Any]],
                 desired: Optional[Dict[str, Any]] = None,
                 state: Optional[Dict[str, Any]] = None,
                 resource_id: str = ''):
        """Initialize ResourceData.

        Args:
            schema: Field definitions (see ADDRESS_SCHEMA)
            desired: Desired values for the non-computed fields
            state: Values recorded by the last read
            resource_id: Identity of the resource, empty when it does not exist
        """
        self.schema = schema
        unknown = set(desired or {}).difference(schema)
        if unknown:
            raise ValueError(f"Unknown fields: {', '.join(sorted(unknown))}")
        for key in desired or {}:
            if schema[key].get('computed'):
                raise ValueError(f"Field {key} is computed and cannot be set")
        self._desired = dict(desired or {})
        self._state = {k: v for k, v in (state or {}).items() if k in schema}
        self._id = resource_id or ''

    def _check_field(self, key: str) -> None:
        if key not in self.schema:
            raise KeyError(f"Unknown field: {key}")

    @property
    def id(self) -> str:
        return self._id

    def set_id(self, resource_id: str) -> None:
        """Set the resource identity. An empty ID marks the resource as gone."""
        self._id = resource_id or ''

    def get(self, key: str) -> str:
        """Get the desired value of a field, or the recorded one for computed fields."""
        self._check_field(key)
        if key in self._desired:
            return _normalize(self._desired[key])
        return _normalize(self._state.get(key))

    def set(self, key: str, value: Any) -> None:
        """Record a value observed in phpIPAM."""
        self._check_field(key)
        self._state[key] = _normalize(value)

    def recorded(self, key: str) -> str:
        """Get the last recorded value of a field."""
        self._check_field(key)
        return _normalize(self._state.get(key))

    def has_change(self, key: str) -> bool:
        self._check_field(key)
        if self.schema[key].get('computed'):
            return False
        return _normalize(self._desired.get(key)) != _normalize(self._state.get(key))

    def changed_fields(self) -> List[str]:
        """Names of the desired fields that differ from the recorded state."""
        return [key for key in self.schema if self.has_change(key)]

    def validate(self) -> None:
        """Check that every required field has a desired value."""
        missing = [key for key, spec in self.schema.items()
                   if spec.get('required') and not _normalize(self._desired.get(key))]
        if missing:
            raise ValueError(f"Missing required fields: {', '.join(missing)}")

    def desired(self) -> Dict[str, str]:
        return {key: self.get(key) for key, spec in self.schema.items()
                if not spec.get('computed')}

    def to_state(self) -> Dict[str, Any]:
        """Serializable form: ID and recorded attributes."""
        return {'id': self._id, 'attributes': dict(self._state)}


def new_address_data(desired: Dict[str, Any], state: Optional[Dict[str, Any]] = None) -> ResourceData:
    """Build ResourceData for a phpipam_address from a manifest entry and a state entry."""
    state = state or {}
    return ResourceData(ADDRESS_SCHEMA, desired, state.get('attributes'), state.get('id', ''))


def create_resource(d: ResourceData, reconciler) -> ResourceData:
    d.validate()
    address_id = reconciler.create(d.get('section'), d.get('subnet'), d.get('hostname'),
                                   d.get('index') or None)
    d.set_id(address_id)
    return read_resource(d, reconciler)


def read_resource(d: ResourceData, reconciler) -> ResourceData:
    """Refresh recorded values from phpIPAM; clear the ID if the address is gone."""
    logger.debug(f"Reading address ID {d.id}")
    info = reconciler.read(d.id)
    if info is None:
        logger.warning(f"Address {d.id} no longer exists in phpIPAM")
        d.set_id('')
        return d

    d.set('hostname', info.hostname)
    d.set('section', info.section)
    d.set('subnet', info.subnet)
    d.set('ip_address', info.ip)
    d.set('broadcast', info.broadcast)
    d.set('gateway', info.gateway)
    d.set('bitmask', info.bitmask)
    d.set('index', info.index)
    return d


def update_resource(d: ResourceData, reconciler) -> ResourceData:
    d.validate()
    try:
        new_id = reconciler.update(d.id, d.desired(), d.changed_fields())
    except PartialUpdateError as e:
        # The replacement exists; track it so the next run does not allocate again.
        # Without an ID the old address is still the one recorded.
        if e.new_id:
            d.set_id(e.new_id)
        raise
    d.set_id(new_id)
    return read_resource(d, reconciler)


def delete_resource(d: ResourceData, reconciler) -> ResourceData:
    reconciler.delete(d.id)
    d.set_id('')
    return d
