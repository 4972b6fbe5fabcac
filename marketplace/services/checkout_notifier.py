"""
Checkout Notifier Service

Turns a buyer's cart into one chat notification per seller:
- Reserves stock for each line with a conditional decrement
- Checks the product's owner is still a seller
- Suppresses repeat clicks (attempt id reuse, and the same product messaged
  on the same thread within a short window)
- Appends the checkout message and refreshes the thread summary

Lines are processed concurrently and independently. A failing line is
reported in ``failed_items`` and never aborts the rest of the cart.
"""

import asyncio
import logging
import time
from typing import Callable, List, Optional, Sequence, Tuple

from marketplace.core.enums import CheckoutStage, MessageType
from marketplace.core.exceptions import (
    BaseServiceError,
    DuplicateRequestError,
    InsufficientStockError,
    InvalidInputError,
    InvalidSellerError,
    NotFoundError,
    RateLimitedError,
    UpstreamWriteError,
)
from marketplace.core.utils import format_price, is_valid_object_id, thread_id_for
from marketplace.models.user import User
from marketplace.schemas.checkout import CartLineRequest, CheckoutOutcome, FailedItem, NotifiedSeller
from marketplace.services.attempt_ledger import AttemptLedger
from marketplace.services.chat_store import ChatStore
from marketplace.services.checkout_saga import ItemSaga
from marketplace.services.stock_ledger import StockLedger
from marketplace.services.user_directory import UserDirectory

logger = logging.getLogger(__name__)


def checkout_message(seller_name: str, buyer_name: str, quantity: int, title: str, total: str) -> str:
    return f"Hello {seller_name}, {buyer_name} wants {quantity}× {title} for ${total}."


class CheckoutNotifier:

    def __init__(
        self,
        stock: StockLedger,
        attempts: AttemptLedger,
        chats: ChatStore,
        users: UserDirectory,
        rate_limit: int = 10,
        rate_window_seconds: int = 300,
        duplicate_window_seconds: int = 30,
        clock: Callable[[], float] = time.time,
    ):
        self.stock = stock
        self.attempts = attempts
        self.chats = chats
        self.users = users
        self.rate_limit = rate_limit
        self.rate_window_seconds = rate_window_seconds
        self.duplicate_window_ms = duplicate_window_seconds * 1000
        self._clock = clock

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    async def checkout(
        self,
        buyer_id: str,
        cart_items: Sequence[CartLineRequest],
        attempt_id: Optional[str] = None,
    ) -> CheckoutOutcome:
        """
        Reserve every cart line and notify its seller.

        Raises:
            InvalidInputError: empty cart or missing buyer id
            DuplicateRequestError: attempt_id was already used
            NotFoundError: buyer does not exist
            RateLimitedError: too many attempts by this buyer
        """
        if not buyer_id or not cart_items:
            raise InvalidInputError("Invalid input")

        if attempt_id and await self.attempts.exists(attempt_id):
            logger.warning(f"Rejected reused checkout attempt {attempt_id} from buyer {buyer_id}")
            raise DuplicateRequestError("Duplicate request detected")

        buyer = await self.users.get_user(buyer_id)
        if buyer is None:
            raise NotFoundError("Buyer not found")

        recent = await self.attempts.count_recent(buyer_id, self.rate_window_seconds)
        if recent >= self.rate_limit:
            logger.warning(f"Buyer {buyer_id} hit the checkout rate limit ({recent} attempts)")
            raise RateLimitedError("Too many attempts. Please wait a few minutes.")

        attempt_id = await self.attempts.record(
            buyer_id,
            [{"productId": line.product_id, "quantity": line.quantity} for line in cart_items],
            attempt_id,
        )

        lines = self._unique_lines(cart_items)
        logger.info(f"Checkout {attempt_id}: buyer {buyer_id}, {len(lines)} line(s)")

        results = await asyncio.gather(*(self._process_line(buyer, line) for line in lines))

        outcome = CheckoutOutcome(attempt_id=attempt_id)
        for notified, failed in results:
            if notified is not None:
                outcome.notified_sellers.append(notified)
            if failed is not None:
                outcome.failed_items.append(failed)

        logger.info(
            f"Checkout {attempt_id} finished: {len(outcome.notified_sellers)} notified, "
            f"{len(outcome.failed_items)} failed"
        )
        return outcome

    @staticmethod
    def _unique_lines(cart_items: Sequence[CartLineRequest]) -> List[CartLineRequest]:
        """
        Drop repeated (product_id, quantity) pairs, keeping the first.

        Ids are compared by repr since a malformed one may be any JSON value,
        including an unhashable list or object.
        """
        seen = set()
        lines = []
        for line in cart_items:
            key = (repr(line.product_id), line.quantity)
            if key in seen:
                logger.debug(f"Skipping repeated cart line {line.product_id} x{line.quantity}")
                continue
            seen.add(key)
            lines.append(line)
        return lines

    async def _process_line(
        self, buyer: User, line: CartLineRequest
    ) -> Tuple[Optional[NotifiedSeller], Optional[FailedItem]]:
        saga = ItemSaga(line.product_id, line.quantity)
        try:
            notified = await self._run_line(saga, buyer, line)
            return notified, None
        except BaseServiceError as e:
            await saga.abort(e)
            logger.warning(f"Checkout line {line.product_id} failed at {saga.stage.value}: {e.message}")
            return None, FailedItem(
                product_id=line.product_id,
                product=e.product_title or saga.product_title,
                reason=e.message,
                code=e.code,
            )
        except Exception as e:
            await saga.abort(e)
            logger.exception(f"Unexpected error processing checkout line {line.product_id}")
            return None, FailedItem(
                product_id=line.product_id,
                product=saga.product_title,
                reason=f"Processing error: {e or 'Unknown error'}",
                code="processing_error",
            )

    async def _run_line(self, saga: ItemSaga, buyer: User, line: CartLineRequest) -> NotifiedSeller:
        product_id, quantity = line.product_id, line.quantity

        if not is_valid_object_id(product_id):
            raise InvalidInputError("Invalid product ID")

        product = await self.stock.reserve(product_id, quantity)
        if product is None:
            current = await self.stock.get_product(product_id)
            if current is None:
                raise NotFoundError("Product not found")
            raise InsufficientStockError(f"Stock too low ({current.stock})", product_title=current.title)

        saga.product_title = product.title
        saga.advance(
            CheckoutStage.RESERVED,
            compensate=lambda: self.stock.release(product_id, quantity),
        )

        seller = await self.users.get_user(product.seller_id)
        if seller is None or not seller.is_seller:
            raise InvalidSellerError("User is not a seller")
        saga.advance(CheckoutStage.SELLER_VALIDATED, compensate=None)

        thread_id = thread_id_for(buyer.id, seller.id)
        if await self._is_recent_duplicate(thread_id, buyer.id, product_id):
            raise DuplicateRequestError("Recent duplicate request")
        saga.advance(CheckoutStage.DUPLICATE_CHECKED, compensate=None)

        # From here on the reservation stands even if the chat store fails
        saga.settle()

        seller_name = await self.users.seller_display_name(seller)
        buyer_name = self.users.buyer_display_name(buyer)
        total_price = format_price(product.price * quantity)
        content = checkout_message(seller_name, buyer_name, quantity, product.title, total_price)
        sent_at = self._now_ms()

        try:
            await self.chats.append_message(
                thread_id=thread_id,
                sender_id=buyer.id,
                receiver_id=seller.id,
                content=content,
                timestamp=sent_at,
                message_type=MessageType.CHECKOUT,
                price=total_price,
                product_id=product_id,
            )
        except Exception as e:
            logger.error(f"Chat write failed for {product_id} on {thread_id}, stock stays reserved: {e}")
            raise UpstreamWriteError(str(e) or "Chat store write failed", product_title=product.title)

        await self._refresh_summary(thread_id, {
            "users": [buyer.id, seller.id],
            "last_message": content,
            "last_timestamp": sent_at,
            "product_id": product_id,
            "buyer_id": buyer.id,
            "seller_id": seller.id,
            "buyer_name": buyer_name,
            "seller_name": seller_name,
            "product_title": product.title,
            "quantity": quantity,
            "price": total_price,
        })

        saga.advance(CheckoutStage.COMMITTED, compensate=None)
        return NotifiedSeller(
            seller_id=seller.id,
            seller_display_name=seller_name,
            product_title=product.title,
            quantity=quantity,
            price=total_price,
        )

    async def _is_recent_duplicate(self, thread_id: str, buyer_id: str, product_id: str) -> bool:
        """True if buyer already sent a checkout message for product_id on this thread just now."""
        now = self._now_ms()
        recent = await self.chats.messages_since(thread_id, now - self.duplicate_window_ms)
        return any(
            message.sender_id == buyer_id
            and message.product_id == product_id
            and message.type == MessageType.CHECKOUT
            and now - message.timestamp < self.duplicate_window_ms
            for message in recent
        )

    async def _refresh_summary(self, thread_id: str, fields: dict) -> None:
        # Best effort once the message is stored
        try:
            await self.chats.upsert_summary(thread_id, fields)
        except Exception as e:
            logger.warning(f"Thread summary update failed for {thread_id}: {e}")
