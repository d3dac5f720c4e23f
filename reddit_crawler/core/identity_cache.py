"""
Run-scoped, single-flight memo of username -> store-assigned user id.
"""

import asyncio
import logging
from contextlib import nullcontext
from typing import Dict, Optional

from reddit_crawler.core.errors import DuplicateUsername, UserResolutionError
from reddit_crawler.core.gateway import EntityStoreGateway

logger = logging.getLogger(__name__)


class UserIdentityCache:
    """
    Resolves usernames to ids issuing at most one ``create_user`` per username.

    Concurrent callers for the same username attach to the one in-flight
    resolution. Different usernames resolve independently. One instance lives
    for one crawl run and is never persisted.
    """

    def __init__(
        self,
        gateway: EntityStoreGateway,
        password: str,
        gate: Optional[asyncio.Semaphore] = None,
    ):
        """
        Args:
            gateway: Store used to create and look up users.
            password: Password given to every user the cache creates.
            gate: Optional semaphore every store call is issued under.
        """
        self.gateway = gateway
        self._password = password
        self._gate = gate
        self._resolved: Dict[str, int] = {}
        self._inflight: Dict[str, "asyncio.Task[int]"] = {}

    def __len__(self) -> int:
        return len(self._resolved)

    def __contains__(self, username: object) -> bool:
        return username in self._resolved

    def cached_id(self, username: str) -> Optional[int]:
        return self._resolved.get(username)

    async def resolve(self, username: str) -> int:
        """
        Return the id for ``username``, creating the user if needed.

        Raises:
            UserResolutionError: If the user could be neither created nor found.
        """
        user_id = self._resolved.get(username)
        if user_id is not None:
            return user_id

        # No await between the lookup and the insert, so the check-and-set is atomic.
        task = self._inflight.get(username)
        if task is None:
            task = asyncio.create_task(self._create_or_lookup(username), name=f"resolve-user:{username}")
            self._inflight[username] = task
            task.add_done_callback(lambda t, name=username: self._settle(name, t))

        # Shield so one cancelled waiter does not cancel the shared resolution.
        return await asyncio.shield(task)

    def _settle(self, username: str, task: "asyncio.Task[int]") -> None:
        self._inflight.pop(username, None)
        if not task.cancelled() and task.exception() is None:
            self._resolved[username] = task.result()

    def _store_gate(self):
        return self._gate if self._gate is not None else nullcontext()

    async def _create_or_lookup(self, username: str) -> int:
        try:
            async with self._store_gate():
                user_id = await self.gateway.create_user(username, self._password)
            logger.debug(f"Created user {username!r} (id={user_id})")
            return user_id
        except DuplicateUsername:
            # Created by an earlier run or another process.
            logger.info(f"User {username!r} already exists, looking up its id")

        async with self._store_gate():
            user_id = await self.gateway.get_user_id(username)
        if user_id is None:
            raise UserResolutionError(username)
        return user_id
