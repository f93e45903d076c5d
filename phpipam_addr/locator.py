#!/usr/bin/env python3
"""Find existing addresses by hostname and index."""

from typing import Optional

from .errors import AmbiguousHostnameError, AmbiguousIndexError, OverAllocatedError
from .phpipam_api import Address


class AddressLocator:
    """Address lookups that enforce one address per (hostname, index)."""

    def __init__(self, api):
        self.api = api

    def locate_existing(self, hostname: str, index: Optional[str] = None) -> Optional[Address]:
        """Find the address already allocated to a hostname.

        Args:
            hostname: Hostname to search for
            index: Optional index tag, compared with the address description

        Returns:
            The matching address, or None when there is none

        Raises:
            AmbiguousIndexError: more than one address carries the same index
            AmbiguousHostnameError: no index given and the hostname has several addresses
        """
        addresses = self.api.search_hostname(hostname)
        if not addresses:
            return None

        if index:
            matches = [a for a in addresses if a.description == index]
            if len(matches) > 1:
                raise AmbiguousIndexError(hostname, index)
            return matches[0] if matches else None

        if len(addresses) > 1:
            raise AmbiguousHostnameError(hostname, len(addresses))
        return addresses[0]

    def resolve_address_id(self, ip: str) -> str:
        """Get the ID of the single address record holding this IP."""
        addresses = self.api.search_ip(ip)
        if len(addresses) != 1:
            raise OverAllocatedError(ip, len(addresses))
        return addresses[0].id
