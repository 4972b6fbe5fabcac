# marketplace/services/checkout_saga.py
"""
State machine for a single checkout line.

A line moves PENDING -> RESERVED -> SELLER_VALIDATED -> DUPLICATE_CHECKED
-> COMMITTED. Every forward transition has to say what undoes it (or pass
``compensate=None`` explicitly), so a new failure branch cannot forget its
rollback. ``abort`` runs the recorded compensations newest first.

``settle`` marks the point of no return: once the line is about to be
written to the chat store its reservation is kept even if that write
fails.
"""

import logging
from typing import Awaitable, Callable, List, Optional, Tuple

from marketplace.core.enums import CheckoutStage

logger = logging.getLogger(__name__)

Compensator = Callable[[], Awaitable[object]]

_NEXT_STAGE = {
    CheckoutStage.PENDING: CheckoutStage.RESERVED,
    CheckoutStage.RESERVED: CheckoutStage.SELLER_VALIDATED,
    CheckoutStage.SELLER_VALIDATED: CheckoutStage.DUPLICATE_CHECKED,
    CheckoutStage.DUPLICATE_CHECKED: CheckoutStage.COMMITTED,
}


class InvalidTransition(RuntimeError):
    pass


class ItemSaga:

    def __init__(self, product_id: str, quantity: int):
        self.product_id = product_id
        self.quantity = quantity
        self.product_title: Optional[str] = None
        self.stage = CheckoutStage.PENDING
        self.settled = False
        self.compensations_run = 0
        self.compensations_failed = 0
        self._compensators: List[Tuple[CheckoutStage, Compensator]] = []

    @property
    def pending_compensations(self) -> int:
        return len(self._compensators)

    def advance(self, stage: CheckoutStage, *, compensate: Optional[Compensator]) -> None:
        expected = _NEXT_STAGE.get(self.stage)
        if stage != expected:
            raise InvalidTransition(f"Cannot move {self.product_id} from {self.stage.value} to {stage.value}")
        if compensate is not None:
            if self.settled:
                raise InvalidTransition(f"{self.product_id} is settled, no further compensation allowed")
            self._compensators.append((stage, compensate))
        self.stage = stage

    def settle(self) -> None:
        """Keep every effect so far; abort() will no longer undo them."""
        if self._compensators:
            logger.debug(
                f"Settling {self.product_id} at {self.stage.value}, "
                f"dropping {len(self._compensators)} compensation(s)"
            )
        self._compensators.clear()
        self.settled = True

    async def abort(self, error: BaseException) -> CheckoutStage:
        """
        Undo every recorded step, newest first.

        A failing compensator is logged and counted but does not stop the
        ones recorded before it.
        """
        failed_at = self.stage
        while self._compensators:
            stage, compensate = self._compensators.pop()
            try:
                await compensate()
                self.compensations_run += 1
                logger.info(f"Compensated {stage.value} for product {self.product_id} after: {error}")
            except Exception as e:
                self.compensations_failed += 1
                logger.error(f"Compensation of {stage.value} for product {self.product_id} failed: {e}")

        self.stage = CheckoutStage.COMPENSATED if self.compensations_run else CheckoutStage.FAILED
        logger.debug(f"Item {self.product_id} aborted at {failed_at.value} -> {self.stage.value}")
        return self.stage
