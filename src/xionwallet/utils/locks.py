"""Concurrency control for signed transactions.

Provides per-signer-address locking so that two executes for the same account
never fetch and use the same sequence number.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from xionwallet.errors import SignerBusy

logger = logging.getLogger(__name__)


class AddressLocks:
    """Registry of asyncio locks keyed by signer address.

    Example:
        locks = AddressLocks()
        async with locks.hold(address, operation="execute"):
            account = await client.get_account_state(address)
            ...
            await client.broadcast_transaction(tx_bytes)
    """

    def __init__(self, timeout: Optional[float] = 30.0):
        """Initialize the registry.

        Args:
            timeout: Default maximum time to wait for a lock (None = wait forever)
        """
        self.timeout = timeout
        self._locks: dict[str, asyncio.Lock] = {}
        # Holders plus waiters per address; the lock is dropped when this reaches zero
        self._users: dict[str, int] = {}
        self._registry_lock = asyncio.Lock()

    async def get_lock(self, address: str) -> asyncio.Lock:
        """Get or create the lock for an address."""
        async with self._registry_lock:
            if address not in self._locks:
                self._locks[address] = asyncio.Lock()
            return self._locks[address]

    async def _checkout(self, address: str) -> asyncio.Lock:
        async with self._registry_lock:
            if address not in self._locks:
                self._locks[address] = asyncio.Lock()
            self._users[address] = self._users.get(address, 0) + 1
            return self._locks[address]

    def _checkin(self, address: str) -> None:
        remaining = self._users.get(address, 0) - 1
        if remaining > 0:
            self._users[address] = remaining
            return
        self._users.pop(address, None)
        lock = self._locks.get(address)
        if lock is not None and not lock.locked():
            del self._locks[address]

    @asynccontextmanager
    async def hold(
        self,
        address: str,
        timeout: Optional[float] = None,
        operation: str = "execute",
    ):
        """Hold the address lock for the duration of the block.

        Raises:
            SignerBusy: If the lock is not acquired within the timeout
        """
        timeout = self.timeout if timeout is None else timeout
        lock = await self._checkout(address)

        try:
            if timeout:
                await asyncio.wait_for(lock.acquire(), timeout=timeout)
            else:
                await lock.acquire()
        except asyncio.TimeoutError:
            self._checkin(address)
            logger.warning(f"Lock timeout for {address} after {timeout}s: {operation}")
            raise SignerBusy(
                f"Another transaction for {address} is in progress; retry later"
            ) from None
        except BaseException:
            self._checkin(address)
            raise

        logger.debug(f"Lock acquired for {address}: {operation}")
        try:
            yield
        finally:
            lock.release()
            self._checkin(address)
            logger.debug(f"Lock released for {address}: {operation}")

    def clear(self) -> None:
        """Drop all locks (useful for testing)."""
        self._locks.clear()
        self._users.clear()

    def __len__(self) -> int:
        return len(self._locks)
