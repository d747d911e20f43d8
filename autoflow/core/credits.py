"""Credit metering. One credit is consumed per run, from the workflow owner."""

import asyncio
import logging
from typing import Optional, Protocol, runtime_checkable

from autoflow.exceptions import InsufficientCredits, UserNotFound

logger = logging.getLogger(__name__)

CREDIT_LIMIT_MESSAGE = "Credit limit reached. Please upgrade your plan."


@runtime_checkable
class CreditStore(Protocol):
    """Atomic decrement-and-check of a user's remaining credits."""

    async def check_and_consume(self, user_id: str) -> int:
        """Consume one credit and return how many remain.

        Raises:
            UserNotFound: if the user is unknown.
            InsufficientCredits: if no credit remains; nothing is consumed.
        """
        ...


class InMemoryCreditStore:
    """Process-local credit balances guarded by an asyncio.Lock."""

    def __init__(self, balances: Optional[dict[str, int]] = None):
        self._balances: dict[str, int] = dict(balances or {})
        self._lock = asyncio.Lock()

    def set_balance(self, user_id: str, credits: int) -> None:
        self._balances[user_id] = credits

    def get_balance(self, user_id: str) -> Optional[int]:
        return self._balances.get(user_id)

    async def check_and_consume(self, user_id: str) -> int:
        async with self._lock:
            if user_id not in self._balances:
                raise UserNotFound(f"User '{user_id}' not found", user_id=user_id)
            if self._balances[user_id] <= 0:
                logger.info(f"[Credits] user={user_id} has no credits left")
                raise InsufficientCredits(CREDIT_LIMIT_MESSAGE, user_id=user_id)
            self._balances[user_id] -= 1
            return self._balances[user_id]
