#!/usr/bin/env python3
"""Provider bootstrap: one configured phpIPAM client per process."""

import logging
from typing import Optional

from .config import Config, get_config
from .phpipam_api import PhpIPAMAPI
from .reconciler import Reconciler

logger = logging.getLogger(__name__)


class Provider:
    """Holds the phpIPAM client and hands out reconcilers bound to it."""

    def __init__(self, config: Optional[Config] = None, api: Optional[PhpIPAMAPI] = None):
        """Initialize Provider.

        Args:
            config: Config instance. If None, uses global config.
            api: Preconfigured client, mainly for tests. Built from config if None.
        """
        self.config = config or get_config()
        if api is None:
            self.config.validate()
            api = PhpIPAMAPI(self.config)
            logger.info(f"phpIPAM client configured for server {self.config.server_url}")
        self.api = api

    def reconciler(self) -> Reconciler:
        return Reconciler(self.api, app_tag=self.config.app_id,
                          strict_names=self.config.strict_names)
