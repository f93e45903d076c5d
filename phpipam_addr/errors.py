#!/usr/bin/env python3
"""Errors raised while reconciling address resources."""

from typing import Optional


class AddressError(Exception):
    """Base exception for address reconciliation."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class NotFoundError(AddressError):
    """A section name or subnet description did not resolve."""

    def __init__(self, kind: str, name: str):
        super().__init__(f"{kind} not found: {name}")
        self.kind = kind
        self.name = name


class AmbiguousNameError(AddressError):
    """A section name or subnet description matched more than one object."""

    def __init__(self, kind: str, name: str, ids: list):
        super().__init__(f"{kind} name is not unique: {name} (IDs {', '.join(ids)})")
        self.kind = kind
        self.name = name
        self.ids = ids


class AmbiguousHostnameError(AddressError):
    def __init__(self, hostname: str, count: int):
        super().__init__(
            f"Multiple addresses found for hostname {hostname} ({count}), set an index to disambiguate")
        self.hostname = hostname
        self.count = count


class AmbiguousIndexError(AddressError):
    def __init__(self, hostname: str, index: str):
        super().__init__(f"Multiple indexed addresses found for hostname {hostname} with index {index}")
        self.hostname = hostname
        self.index = index


class OverAllocatedError(AddressError):
    """An IP resolved to something other than exactly one address record."""

    def __init__(self, ip: str, count: int):
        super().__init__(f"Address over allocated: {ip} matches {count} address records")
        self.ip = ip
        self.count = count


class SubnetNotFoundError(AddressError):
    def __init__(self, address_id: str, subnet_id: str):
        super().__init__(f"Address subnet not found: address {address_id} references subnet {subnet_id}")
        self.address_id = address_id
        self.subnet_id = subnet_id


class SectionNotFoundError(AddressError):
    def __init__(self, subnet_id: str, section_id: str):
        super().__init__(f"Subnet section not found: subnet {subnet_id} references section {section_id}")
        self.subnet_id = subnet_id
        self.section_id = section_id


class ReconcileError(AddressError):
    """A reconciliation phase failed.

    The original exception is kept in ``cause`` (and chained as
    ``__cause__``) so callers can still tell a lookup failure from a
    transport failure.
    """

    def __init__(self, phase: str, cause: Exception):
        super().__init__(f"Error in {phase}: {cause}")
        self.phase = phase
        self.cause = cause


class PartialUpdateError(AddressError):
    """A replacement allocated the new address but did not retire the old one.

    ``new_id`` is empty when the new address was allocated but its ID could
    not be looked up; ``new_ip`` still names it.
    """

    def __init__(self, new_id: str, old_id: str, cause: Optional[Exception] = None,
                 new_ip: str = ''):
        if new_id:
            message = f"Address {new_id} allocated but previous address {old_id} could not be removed: {cause}"
        else:
            message = (f"Address {new_ip} allocated but its ID could not be determined; "
                       f"previous address {old_id} kept: {cause}")
        super().__init__(message)
        self.new_id = new_id
        self.new_ip = new_ip
        self.old_id = old_id
        self.cause = cause
