"""Broadcast fan-out for linechat.

Delivers one outbound message to every authenticated session except its
sender. The recipient list is copied out of the registry before anything is
queued, and each recipient's own writer thread does the socket I/O, so a
slow peer never holds up logins or delivery to anyone else.
"""

import logging

logger = logging.getLogger(__name__)


class BroadcastRouter:
    """Push messages from one session to all the others.

    Args:
        registry: Shared SessionRegistry
    """

    def __init__(self, registry):
        self.registry = registry

    def broadcast(self, exclude_id, message):
        """Queue ``message`` for every authenticated session but ``exclude_id``.

        A recipient whose queue stays full past its send timeout, or whose
        writer later fails, is marked for teardown; delivery to the remaining
        recipients continues and nothing is raised.

        Args:
            exclude_id: Session id of the originator, or None to reach everyone
            message: OutboundMessage to deliver

        Returns:
            Number of sessions the message was queued for
        """
        delivered = 0
        for session in self.registry.recipients(exclude_id):
            if session.send(message):
                delivered += 1
            else:
                logger.info("Skipped %s, session is being dropped", session.username)
        return delivered
