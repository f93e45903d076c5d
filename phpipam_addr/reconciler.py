#!/usr/bin/env python3
"""Create, read, update and delete a managed phpIPAM address."""

import logging
import threading
from contextlib import contextmanager
from typing import Dict, Any, Iterable, Optional, Tuple

from .address_info import AddressInfoFetcher, AddressInformation
from .allocator import Allocator
from .errors import AddressError, ReconcileError, PartialUpdateError
from .locator import AddressLocator
from .naming import NameResolver
from .phpipam_api import Address, PhpIPAMAPIError

logger = logging.getLogger(__name__)

# Serializes allocation and removal for every resource in the process.
# Re-entrant so a replacement can hold it across its create and delete steps.
_ALLOCATION_LOCK = threading.RLock()

STRUCTURAL_FIELDS = ('section', 'subnet', 'index')


@contextmanager
def _phase(name: str):
    """Wrap lookup and API failures with the phase they happened in."""
    try:
        yield
    except (ReconcileError, PartialUpdateError):
        raise
    except (AddressError, PhpIPAMAPIError) as e:
        raise ReconcileError(name, e) from e


class Reconciler:
    """Converge one address resource at a time against phpIPAM."""

    def __init__(self, api, app_tag: str = 'phpipam_addr', strict_names: bool = True,
                 lock=None):
        """Initialize Reconciler.

        Args:
            api: PhpIPAMAPI instance
            app_tag: Application identifier recorded on allocated addresses
            strict_names: Fail on duplicate section/subnet names
            lock: Lock for mutating operations. Defaults to the process-wide lock.
        """
        self.api = api
        self.resolver = NameResolver(api, strict=strict_names)
        self.locator = AddressLocator(api)
        self.allocator = Allocator(api, app_tag)
        self.fetcher = AddressInfoFetcher(api)
        self.lock = lock or _ALLOCATION_LOCK

    def create(self, section: str, subnet: str, hostname: str,
               index: Optional[str] = None, force: bool = False) -> str:
        """Allocate (or adopt) the address for a hostname.

        An address already carrying this (hostname, index) is reused unless
        ``force`` is set, in which case a new one is always allocated.

        Returns:
            The phpIPAM address ID
        """
        with self.lock:
            return self._create(section, subnet, hostname, index, force)

    def _create(self, section: str, subnet: str, hostname: str,
                index: Optional[str], force: bool) -> str:
        subnet_id, existing = self._locate(section, subnet, hostname, index)

        if existing is None or force:
            ip = self._allocate(subnet_id, hostname, index)
        else:
            ip = existing.ip
            logger.info(f"Existing address reused: {ip} ({hostname})")

        return self._address_id(ip)

    def _locate(self, section: str, subnet: str, hostname: str,
                index: Optional[str]) -> Tuple[str, Optional[Address]]:
        with _phase('section lookup'):
            section_id = self.resolver.resolve_section(section)
        with _phase('subnet lookup'):
            subnet_id = self.resolver.resolve_subnet(section_id, subnet)
        with _phase('address search'):
            existing = self.locator.locate_existing(hostname, index)
        logger.debug(f"Section ID: {section_id}, subnet ID: {subnet_id}, existing: {existing is not None}")
        return subnet_id, existing

    def _allocate(self, subnet_id: str, hostname: str, index: Optional[str]) -> str:
        with _phase('allocation'):
            ip = self.allocator.allocate(subnet_id, hostname, index).ip
        logger.info(f"New address allocated: {ip} ({hostname})")
        return ip

    def _address_id(self, ip: str) -> str:
        with _phase('address id lookup'):
            address_id = self.locator.resolve_address_id(ip)
        logger.debug(f"Address {ip} has ID {address_id}")
        return address_id

    def read(self, address_id: str) -> Optional[AddressInformation]:
        """Fetch the current view of an address, None if it is gone."""
        with _phase('read'):
            return self.fetcher.fetch(address_id)

    def update(self, address_id: str, desired: Dict[str, Any],
               changed: Iterable[str]) -> str:
        """Bring an existing address in line with the desired fields.

        A section, subnet or index change replaces the address; a hostname
        change alone is patched in place.

        Args:
            address_id: Current address ID
            desired: Desired hostname, section, subnet and index
            changed: Names of the fields that differ from the recorded state

        Returns:
            The address ID after the update (new on replacement)
        """
        changed = set(changed)
        if changed.intersection(STRUCTURAL_FIELDS):
            return self.replace(address_id, desired)

        if 'hostname' in changed:
            with self.lock, _phase('hostname update'):
                self.api.update_hostname(desired['hostname'], address_id)
            logger.info(f"Address {address_id} hostname updated: {desired['hostname']}")
        return address_id

    def replace(self, address_id: str, desired: Dict[str, Any]) -> str:
        """Allocate a new address for the desired fields, then remove the old one.

        Raises:
            ReconcileError: failed before anything was allocated; nothing changed
            PartialUpdateError: the new address exists but the old one remains
        """
        with self.lock:
            subnet_id, _ = self._locate(desired['section'], desired['subnet'],
                                        desired['hostname'], desired.get('index'))
            new_ip = self._allocate(subnet_id, desired['hostname'], desired.get('index'))
            try:
                new_id = self._address_id(new_ip)
            except ReconcileError as e:
                logger.error(f"Address {new_ip} allocated but its ID lookup failed: {e}")
                raise PartialUpdateError('', address_id, e.cause, new_ip=new_ip) from e
            try:
                self._delete(address_id)
            except ReconcileError as e:
                logger.error(f"Address {new_id} allocated but {address_id} not removed: {e}")
                raise PartialUpdateError(new_id, address_id, e.cause, new_ip=new_ip) from e
        logger.info(f"Address {address_id} replaced by {new_id}")
        return new_id

    def delete(self, address_id: str) -> None:
        """Release an address. A missing address is an error."""
        with self.lock:
            self._delete(address_id)

    def _delete(self, address_id: str) -> None:
        with _phase('deletion'):
            self.allocator.release(address_id)
        logger.info(f"Address removed: {address_id}")
