"""
Chat hub module.

This module fans chat and presence events out to live sessions.
"""

import asyncio
from typing import Awaitable, Callable, Iterable, Optional

from netquiz.common.protocol_definitions import ChatEvent, encode_event
from netquiz.server.users.registry import Session, SessionRegistry
from netquiz.server.utils.logger import logger


FailureCallback = Callable[[Session], Awaitable[None]]


class ChatHub:
    """Delivers events to the right set of sessions."""

    def __init__(self, registry: SessionRegistry, on_failure: Optional[FailureCallback] = None):
        self.registry = registry
        self.on_failure = on_failure  # Called for each target whose write failed

    async def broadcast(self, event: ChatEvent, exclude: Iterable[str] = ()) -> int:
        """
        Send an event to every registered session except the excluded usernames.

        Uses a snapshot of the registry, so a session joining mid-broadcast
        may miss this event. Returns the number of successful deliveries.
        """
        excluded = set(exclude)
        targets = [s for s in await self.registry.snapshot() if s.username not in excluded]
        if not targets:
            return 0

        data = encode_event(event)
        results = await asyncio.gather(*(self._deliver(target, data) for target in targets))

        failed = [target for target, ok in zip(targets, results) if not ok]
        for target in failed:
            await self._handle_failure(target)

        return len(targets) - len(failed)

    async def send(self, session: Session, event: ChatEvent) -> bool:
        """Send an event to a single session."""
        if await self._deliver(session, encode_event(event)):
            return True
        await self._handle_failure(session)
        return False

    async def _deliver(self, session: Session, data: bytes) -> bool:
        try:
            await session.send(data)
            return True
        except (ConnectionError, OSError) as e:
            logger.error(f"Failed to send to '{session.username}': {e}")
            return False

    async def _handle_failure(self, session: Session):
        if self.on_failure is not None:
            await self.on_failure(session)
