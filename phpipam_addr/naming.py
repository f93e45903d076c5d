#!/usr/bin/env python3
"""Resolve section names and subnet descriptions to phpIPAM IDs."""

import logging
from typing import List

from .errors import NotFoundError, AmbiguousNameError

logger = logging.getLogger(__name__)


class NameResolver:
    """Name to ID lookups. Nothing is cached; every call lists again."""

    def __init__(self, api, strict: bool = True):
        """Initialize NameResolver.

        Args:
            api: PhpIPAMAPI (or anything offering the same calls)
            strict: Raise AmbiguousNameError on duplicate names. When False the
                last match in listing order wins.
        """
        self.api = api
        self.strict = strict

    def _pick(self, kind: str, name: str, ids: List[str]) -> str:
        if not ids:
            raise NotFoundError(kind, name)
        if len(ids) > 1:
            if self.strict:
                raise AmbiguousNameError(kind, name, ids)
            logger.warning(f"{kind} {name!r} matches IDs {ids}, using {ids[-1]}")
        return ids[-1]

    def resolve_section(self, name: str) -> str:
        """Get the ID of the section with this exact name."""
        ids = [s.id for s in self.api.list_sections() if s.name == name]
        section_id = self._pick('Section', name, ids)
        logger.debug(f"Section {name!r} resolved to ID {section_id}")
        return section_id

    def resolve_subnet(self, section_id: str, description: str) -> str:
        """Get the ID of the subnet in a section with this exact description."""
        ids = [s.id for s in self.api.list_section_subnets(section_id)
               if s.description == description]
        subnet_id = self._pick('Subnet', description, ids)
        logger.debug(f"Subnet {description!r} in section {section_id} resolved to ID {subnet_id}")
        return subnet_id
