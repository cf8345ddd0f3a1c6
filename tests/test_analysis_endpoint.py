import pytest
from httpx import ASGITransport, AsyncClient

from fainatic.core.config import get_settings
from fainatic.core.deps import get_recommendation_service
from fainatic.schemas.recommendation import Recommendation, RecommendationImpact
from main import app

TRANSACTIONS = [
    {"date": "2024-01-05", "amount": -42.5, "currency": "USD", "counterparty": "Uber ride", "category": "Transport"},
    {"date": "2024-01-10", "amount": 3000, "currency": "USD", "counterparty": "Salary payment", "category": "Income"},
]


class FakeRecommender:
    async def enrich(self, analysis):
        recommendation = Recommendation(
            id="easy-1",
            title="Cook at home",
            description="Fewer restaurant visits",
            impact=RecommendationImpact(monthly=50, yearly=600),
        )
        return analysis.model_copy(update={"recommendations": {"easy": [recommendation]}})


@pytest.fixture
def client_settings(settings):
    app.dependency_overrides[get_settings] = lambda: settings
    yield settings
    app.dependency_overrides.clear()


def client():
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


@pytest.mark.asyncio
async def test_base_analysis(client_settings):
    async with client() as ac:
        r = await ac.post("/api/v1/analysis/base", json={"transactions": TRANSACTIONS})

    assert r.status_code == 200
    body = r.json()
    assert body["report_info"]["period_in_days"] == 6
    assert body["summary"]["income"]["total"] == 3000
    assert body["summary"]["expenses"]["total"] == 42.5
    assert body["summary"]["expenses"]["categories"][0]["name"] == "Transport"
    assert [f["years"] for f in body["wealth_forecasts"]["baseline"]] == [5, 10, 25]
    assert body["recommendations"] == {}


@pytest.mark.asyncio
async def test_empty_transactions(client_settings):
    async with client() as ac:
        r = await ac.post("/api/v1/analysis/base", json={"transactions": []})

    assert r.status_code == 422
    assert r.json()["error"]["code"] == "ANALYSIS_PRECONDITION_FAILED"


@pytest.mark.asyncio
async def test_invalid_transaction_body(client_settings):
    async with client() as ac:
        r = await ac.post("/api/v1/analysis/base", json={"transactions": [{"date": "yesterday"}]})

    assert r.status_code == 422
    assert "detail" in r.json()


@pytest.mark.asyncio
async def test_recommendations_need_an_api_key(client_settings):
    async with client() as ac:
        r = await ac.post("/api/v1/analysis/recommendations", json={"transactions": TRANSACTIONS})

    assert r.status_code == 503
    assert r.json()["error"]["code"] == "CONFIGURATION_ERROR"


@pytest.mark.asyncio
async def test_recommendations(client_settings):
    app.dependency_overrides[get_recommendation_service] = lambda: FakeRecommender()
    async with client() as ac:
        r = await ac.post("/api/v1/analysis/recommendations", json={"transactions": TRANSACTIONS})

    assert r.status_code == 200
    easy = r.json()["recommendations"]["easy"]
    assert easy[0]["impact"] == {"monthly": 50.0, "yearly": 600.0}


@pytest.mark.asyncio
async def test_positive_amount_with_expense_category_counts_as_income(client_settings):
    refund = {"date": "2024-01-07", "amount": 20, "currency": "USD", "counterparty": "Amazon", "category": "Shopping"}
    async with client() as ac:
        r = await ac.post("/api/v1/analysis/base", json={"transactions": TRANSACTIONS + [refund]})

    assert r.status_code == 200
    income = r.json()["summary"]["income"]
    assert [c["name"] for c in income["categories"]] == ["Income"]
    assert income["total"] == 3020


@pytest.mark.asyncio
async def test_out_of_range_amount_is_rejected(client_settings):
    huge = dict(TRANSACTIONS[0], amount=-1e29)
    async with client() as ac:
        r = await ac.post("/api/v1/analysis/base", json={"transactions": [huge]})

    assert r.status_code == 422
