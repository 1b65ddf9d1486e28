"""
Network name resolution for instance hosts.
"""

import logging
import socket

from sqladminops.domain.config.models.credential import Credential
from sqladminops.domain.models import LOCALHOST_ALIASES

logger = logging.getLogger(__name__)


class SocketNameResolver:
    """Resolves host names to FQDNs through the system resolver."""

    def resolve(self, host: str, credential: Credential | None = None) -> str:
        """
        Fully-qualified name of `host`.

        The credential is accepted for interface parity; DNS needs none.
        Returns the input unchanged when nothing better is known.
        """
        if host.lower() in LOCALHOST_ALIASES:
            fqdn = socket.getfqdn()
        else:
            fqdn = socket.getfqdn(host)
        logger.debug("Resolved %s -> %s", host, fqdn)
        return fqdn or host
