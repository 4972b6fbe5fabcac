# tests/unit/services/test_checkout_saga.py
import pytest
from unittest.mock import AsyncMock

from marketplace.core.enums import CheckoutStage
from marketplace.services.checkout_saga import InvalidTransition, ItemSaga


def test_saga_walks_every_stage_in_order():
    saga = ItemSaga("p1", 2)
    saga.advance(CheckoutStage.RESERVED, compensate=AsyncMock())
    saga.advance(CheckoutStage.SELLER_VALIDATED, compensate=None)
    saga.advance(CheckoutStage.DUPLICATE_CHECKED, compensate=None)
    saga.settle()
    saga.advance(CheckoutStage.COMMITTED, compensate=None)

    assert saga.stage == CheckoutStage.COMMITTED
    assert saga.pending_compensations == 0


def test_skipping_a_stage_is_rejected():
    saga = ItemSaga("p1", 1)
    with pytest.raises(InvalidTransition):
        saga.advance(CheckoutStage.SELLER_VALIDATED, compensate=None)
    assert saga.stage == CheckoutStage.PENDING


def test_compensate_is_keyword_only():
    saga = ItemSaga("p1", 1)
    with pytest.raises(TypeError):
        saga.advance(CheckoutStage.RESERVED, None)


def test_no_compensation_after_settle():
    saga = ItemSaga("p1", 1)
    saga.advance(CheckoutStage.RESERVED, compensate=AsyncMock())
    saga.advance(CheckoutStage.SELLER_VALIDATED, compensate=None)
    saga.settle()
    with pytest.raises(InvalidTransition):
        saga.advance(CheckoutStage.DUPLICATE_CHECKED, compensate=AsyncMock())


@pytest.mark.asyncio
async def test_abort_runs_compensations_newest_first():
    calls = []

    async def release():
        calls.append("release")

    async def unflag():
        calls.append("unflag")

    saga = ItemSaga("p1", 1)
    saga.advance(CheckoutStage.RESERVED, compensate=release)
    saga.advance(CheckoutStage.SELLER_VALIDATED, compensate=unflag)

    stage = await saga.abort(RuntimeError("seller gone"))

    assert calls == ["unflag", "release"]
    assert stage == CheckoutStage.COMPENSATED
    assert saga.compensations_run == 2
    assert saga.pending_compensations == 0


@pytest.mark.asyncio
async def test_failing_compensation_does_not_stop_earlier_ones():
    first = AsyncMock()
    broken = AsyncMock(side_effect=RuntimeError("db down"))

    saga = ItemSaga("p1", 1)
    saga.advance(CheckoutStage.RESERVED, compensate=first)
    saga.advance(CheckoutStage.SELLER_VALIDATED, compensate=broken)

    await saga.abort(RuntimeError("boom"))

    first.assert_awaited_once()
    broken.assert_awaited_once()
    assert saga.compensations_run == 1
    assert saga.compensations_failed == 1


@pytest.mark.asyncio
async def test_settled_saga_keeps_its_effects_on_abort():
    release = AsyncMock()
    saga = ItemSaga("p1", 1)
    saga.advance(CheckoutStage.RESERVED, compensate=release)
    saga.settle()

    stage = await saga.abort(RuntimeError("chat store down"))

    release.assert_not_awaited()
    assert stage == CheckoutStage.FAILED
