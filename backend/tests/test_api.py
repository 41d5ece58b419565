import httpx
import pytest

from portfolio_ledger.main import create_app

from conftest import USER, seed_cash, seed_position


@pytest.fixture
async def client(database, quotes):
    app = create_app()
    # ASGITransport 不触发 lifespan，这里直接挂上测试用的数据库和行情网关
    app.state.database = database
    app.state.quote_gateway = quotes
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert "X-Process-Time" in response.headers


async def test_add_asset_then_buy_and_sell(client):
    response = await client.post(f"/api/user/{USER}/assets", json={
        "asset_type": "cash", "symbol": "USD", "quantity": 1000, "average_price": 1,
    })
    assert response.status_code == 200
    assert response.json()["action"] == "created"

    response = await client.post(f"/api/user/{USER}/buy", json={"symbol": "acme", "quantity": 10})
    assert response.status_code == 200
    body = response.json()
    assert body == {"success": True, "symbol": "ACME", "quantity": 10.0, "price": 50.0, "totalCost": 500.0}

    response = await client.post(f"/api/user/{USER}/sell", json={"symbol": "ACME", "quantity": 4})
    assert response.status_code == 200
    assert response.json()["totalRevenue"] == 200.0
    assert "totalCost" not in response.json()

    response = await client.get(f"/api/user/{USER}/assets/cash")
    assert response.json() == {"userId": USER, "totalCash": 700.0}


async def test_trade_errors_map_to_status_codes(client, store):
    await seed_cash(store, USER, 100)

    response = await client.post(f"/api/user/{USER}/buy", json={"symbol": "ACME", "quantity": 10})
    assert response.status_code == 400
    assert response.json() == {"detail": "Insufficient cash balance"}

    response = await client.post(f"/api/user/{USER}/sell", json={"symbol": "ACME", "quantity": 1})
    assert response.status_code == 400
    assert response.json() == {"detail": "Insufficient stock holdings"}

    response = await client.post(f"/api/user/{USER}/buy", json={"symbol": "ACME", "quantity": 0})
    assert response.status_code == 400

    response = await client.post(f"/api/user/{USER}/buy", json={"quantity": 1})
    assert response.status_code == 400

    response = await client.post(f"/api/user/{USER}/buy", json={"symbol": "NOPE", "quantity": 1})
    assert response.status_code == 404
    assert response.json() == {"detail": "Stock price not found for NOPE"}


async def test_summary_and_details_use_camel_case(client, store):
    await seed_cash(store, USER, 200)
    await seed_position(store, USER, "stock", "ACME", 2, 40)

    summary = (await client.get(f"/api/user/{USER}/assets/summary")).json()
    assert summary["totalStockCost"] == 80.0
    assert summary["totalStockValue"] == 100.0
    assert summary["unrealizedPl"] == 20.0
    assert summary["totalValue"] == 300.0

    details = (await client.get(f"/api/user/{USER}/assets/details")).json()
    assert {d["symbol"] for d in details} == {"USD", "ACME"}
    assert all("averagePrice" in d and "priceStatus" in d for d in details)

    cost = (await client.get(f"/api/user/{USER}/assets/stocks/cost")).json()
    assert cost == {"userId": USER, "totalCost": 80.0}

    value = (await client.get(f"/api/user/{USER}/assets/stocks")).json()
    assert value == {"userId": USER, "totalValue": 100.0}


async def test_single_asset_lookup(client, store):
    await seed_position(store, USER, "stock", "ACME", 2, 40)

    response = await client.get(f"/api/user/{USER}/assets/stock/acme")
    assert response.status_code == 200
    assert response.json()["currentValue"] == 100.0

    response = await client.get(f"/api/user/{USER}/assets/stock/MISSING")
    assert response.status_code == 404
    assert response.json() == {"detail": "Asset not found"}


async def test_held_stocks(client, store):
    await seed_position(store, USER, "stock", "ACME", 2, 40)

    response = await client.get(f"/api/user/{USER}/held-stocks")
    assert response.json() == {"success": True, "symbols": ["ACME"]}


async def test_transactions_endpoint(client, store):
    await seed_cash(store, USER, 1000)
    for _ in range(3):
        await client.post(f"/api/user/{USER}/buy", json={"symbol": "ACME", "quantity": 1})

    response = await client.get(f"/api/user/{USER}/transactions", params={"page": 1, "pageSize": 2})
    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 3
    assert body["pageSize"] == 2
    assert len(body["transactions"]) == 2
    assert body["transactions"][0]["type"] == "buy"

    response = await client.get(f"/api/user/{USER}/transactions", params={"pageSize": 500})
    assert response.status_code == 400

    response = await client.get(f"/api/user/{USER}/transactions", params={"page": "abc"})
    assert response.status_code == 400
    assert response.json() == {"detail": "Invalid page"}


async def test_stock_quote_and_history(client):
    response = await client.get("/api/stock/quote/acme")
    assert response.status_code == 200
    assert response.json()["price"] == 50.0

    response = await client.get("/api/stock/quote/NOPE")
    assert response.status_code == 404

    response = await client.get("/api/stock/ACME", params={"interval": "1week", "outputsize": 2})
    assert response.status_code == 200
    assert response.json()["interval"] == "1week"
    assert len(response.json()["values"]) == 2

    response = await client.get("/api/stock/ACME", params={"outputsize": 0})
    assert response.status_code == 400

    response = await client.get("/api/stock/search/AC")
    assert [m["symbol"] for m in response.json()] == ["ACME"]

    response = await client.get("/api/stock/search/ZZZ")
    assert response.status_code == 404


async def test_held_stocks_response_is_documented(client):
    schema = (await client.get("/openapi.json")).json()
    response = schema["paths"]["/api/user/{user_id}/held-stocks"]["get"]["responses"]["200"]
    assert response["content"]["application/json"]["schema"]["$ref"].endswith("/HeldSymbols")
