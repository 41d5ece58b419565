from decimal import Decimal

import pytest

from portfolio_ledger.core.exceptions import InvalidInput

from conftest import USER, get_position, snapshot


async def test_add_new_stock_position(asset_service, store):
    change = await asset_service.add_asset(USER, "stock", "acme", 10, "42.5")

    assert change.action == "created"
    assert change.symbol == "ACME"
    assert change.quantity == Decimal("10")
    assert change.average_price == Decimal("42.5")

    stock = await get_position(store, USER, "stock", "ACME")
    assert stock.id == change.id
    assert stock.average_price == Decimal("42.5")


async def test_add_to_existing_stock_uses_weighted_average(asset_service, store):
    await asset_service.add_asset(USER, "stock", "ACME", 10, 50)
    change = await asset_service.add_asset(USER, "stock", "ACME", 30, 70)

    assert change.action == "updated"
    assert change.quantity == Decimal("40")
    # (10*50 + 30*70) / 40 = 65
    assert change.average_price == Decimal("65")


async def test_manual_add_writes_no_transaction(asset_service, store):
    await asset_service.add_asset(USER, "cash", "USD", 1000, 1)
    await asset_service.add_asset(USER, "stock", "ACME", 1, 10)

    _, total = await snapshot(store, USER)
    assert total == 0


async def test_cash_average_price_is_forced_to_one(asset_service, store):
    change = await asset_service.add_asset(USER, "cash", "usd", "250.50", 7)
    assert change.average_price == Decimal("1")

    change = await asset_service.add_asset(USER, "cash", "USD", 100, 3)
    assert change.action == "updated"
    assert change.quantity == Decimal("350.50")

    cash = await get_position(store, USER, "cash", "USD")
    assert cash.average_price == Decimal("1")


async def test_stock_may_be_seeded_at_zero_cost(asset_service):
    change = await asset_service.add_asset(USER, "stock", "GIFT", 5, 0)
    assert change.average_price == Decimal("0")


@pytest.mark.parametrize("asset_type, symbol, quantity, average_price", [
    (None, "ACME", 1, 1),
    ("stock", None, 1, 1),
    ("stock", "ACME", None, 1),
    ("stock", "ACME", 1, None),
    ("bond", "ACME", 1, 1),
    ("stock", "ACME", 0, 1),
    ("stock", "ACME", -1, 1),
    ("stock", "ACME", 1, -3),
    ("stock", "ACME", "many", 1),
    ("cash", "EUR", 100, 1),
    ("stock", "ABCDEFGHIJK", 1, 1),
])
async def test_add_asset_rejects_invalid_input(asset_service, store, asset_type, symbol, quantity, average_price):
    with pytest.raises(InvalidInput):
        await asset_service.add_asset(USER, asset_type, symbol, quantity, average_price)
    assert await snapshot(store, USER) == ([], 0)


async def test_positions_are_isolated_per_user(asset_service, store):
    await asset_service.add_asset("alice", "stock", "ACME", 1, 10)
    await asset_service.add_asset("bob", "stock", "ACME", 2, 20)

    assert (await get_position(store, "alice", "stock", "ACME")).quantity == Decimal("1")
    assert (await get_position(store, "bob", "stock", "ACME")).quantity == Decimal("2")


async def test_symbol_of_column_width_is_accepted(asset_service):
    change = await asset_service.add_asset(USER, "stock", "abcdefghij", 1, 1)
    assert change.symbol == "ABCDEFGHIJ"
