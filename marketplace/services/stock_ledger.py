# marketplace/services/stock_ledger.py
import logging
from typing import Optional

from sqlalchemy import update
from sqlalchemy.ext.asyncio import async_sessionmaker

from marketplace.models.product import Product

logger = logging.getLogger(__name__)


class StockLedger:
    """
    Reads and moves product stock.

    Every call runs in its own short transaction, so a reservation is
    committed the moment it succeeds and a release is an independent
    increment rather than a rollback.
    """

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    async def reserve(self, product_id: str, quantity: int) -> Optional[Product]:
        """
        Atomically take quantity units out of stock.

        The decrement only applies when the row currently holds at least
        quantity units. Returns the product as it stands after the
        decrement, or None when nothing matched (missing product or not
        enough stock).
        """
        async with self.session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    update(Product)
                    .where(Product.id == product_id, Product.stock >= quantity)
                    .values(stock=Product.stock - quantity)
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount != 1:
                    return None

                product = await session.get(Product, product_id)

        logger.debug(f"Reserved {quantity} of product {product_id}, {product.stock} left")
        return product

    async def release(self, product_id: str, quantity: int) -> bool:
        """Put quantity units back. Returns False if the product has vanished."""
        async with self.session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    update(Product)
                    .where(Product.id == product_id)
                    .values(stock=Product.stock + quantity)
                    .execution_options(synchronize_session=False)
                )
                released = result.rowcount == 1

        if released:
            logger.info(f"Released {quantity} of product {product_id} back to stock")
        else:
            logger.warning(f"Could not release stock for missing product {product_id}")
        return released

    async def get_product(self, product_id: str) -> Optional[Product]:
        async with self.session_factory() as session:
            return await session.get(Product, product_id)
