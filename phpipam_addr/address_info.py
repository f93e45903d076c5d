#!/usr/bin/env python3
"""Build the denormalized view of a managed address."""

import logging
import re
from dataclasses import dataclass, asdict
from typing import Dict, Any, Optional

from .errors import SubnetNotFoundError, SectionNotFoundError

logger = logging.getLogger(__name__)


@dataclass
class AddressInformation:
    """Address joined with its subnet and section."""
    hostname: str
    ip: str
    section: str = ""
    subnet: str = ""
    broadcast: str = ""
    gateway: str = ""
    bitmask: str = ""
    index: str = ""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)


# Optional sign and ASCII digits only, no blanks or underscores
_INTEGER_RE = re.compile(r'[+-]?[0-9]+')


def _is_integer(value: str) -> bool:
    return bool(value) and _INTEGER_RE.fullmatch(value) is not None


class AddressInfoFetcher:
    """Walk address -> subnet -> section for one address ID."""

    def __init__(self, api):
        self.api = api

    def fetch(self, address_id: str) -> Optional[AddressInformation]:
        """Fetch the managed view of an address.

        Args:
            address_id: phpIPAM address ID

        Returns:
            AddressInformation, or None if the address no longer exists

        Raises:
            SubnetNotFoundError: the address points to a missing subnet
            SectionNotFoundError: the subnet points to a missing section
        """
        address = self.api.get_address(address_id)
        if address is None:
            logger.debug(f"Address {address_id} not found")
            return None

        info = AddressInformation(hostname=address.hostname, ip=address.ip)

        # The index is the description of this very address, when it is numeric
        for candidate in self.api.search_hostname(address.hostname):
            if candidate.id == address_id and _is_integer(candidate.description):
                info.index = candidate.description

        subnet = self.api.get_subnet(address.subnet_id)
        if subnet is None:
            raise SubnetNotFoundError(address_id, address.subnet_id)
        info.subnet = subnet.description
        info.broadcast = subnet.broadcast
        info.gateway = subnet.gateway
        info.bitmask = subnet.bitmask

        section = self.api.get_section(subnet.section_id)
        if section is None:
            raise SectionNotFoundError(subnet.id or address.subnet_id, subnet.section_id)
        info.section = section.name

        return info
