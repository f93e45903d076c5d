#!/usr/bin/env python3
"""First-free address allocation and release."""

import logging
from typing import Optional

from .phpipam_api import Address

logger = logging.getLogger(__name__)


class Allocator:
    """Allocate and release addresses. Failures are not retried."""

    def __init__(self, api, app_tag: str):
        """Initialize Allocator.

        Args:
            api: PhpIPAMAPI instance
            app_tag: Application identifier recorded as owner of allocated addresses
        """
        self.api = api
        self.app_tag = app_tag

    def allocate(self, subnet_id: str, hostname: str, index: Optional[str] = None) -> Address:
        address = self.api.create_first_free(subnet_id, hostname, self.app_tag, index or '')
        logger.debug(f"First free address in subnet {subnet_id}: {address.ip}")
        return address

    def release(self, address_id: str) -> None:
        self.api.delete_address(address_id)
