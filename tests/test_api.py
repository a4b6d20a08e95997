import pytest
from fastapi.testclient import TestClient

from conftest import InMemoryCatalogStore, ScriptedEmbeddings
from src.api.app import app
from src.api.dependencies import get_search_service
from src.utils.errors import ProviderTimeout


@pytest.fixture
def client_for(make_service):
    def _client(embeddings, store):
        service = make_service(embeddings, store)
        app.dependency_overrides[get_search_service] = lambda: service
        return TestClient(app)

    yield _client
    app.dependency_overrides.clear()


def test_search_returns_ranked_products(client_for, toy_rows):
    client = client_for(ScriptedEmbeddings(default=[1.0, 0.0]), InMemoryCatalogStore(toy_rows))

    response = client.post("/search", json={"query": "chocolate birthday"})

    assert response.status_code == 200
    body = response.json()
    assert [p["id"] for p in body["products"]] == ["1", "3"]
    assert body["products"][0]["similarity"] == pytest.approx(1.0)
    assert body["products"][0]["thumbnail_url"].startswith("https://res.cloudinary.com/")
    assert body["debug"] is None


def test_search_debug_block(client_for, toy_rows):
    store = InMemoryCatalogStore(toy_rows, match_error=RuntimeError("rpc missing"))
    client = client_for(ScriptedEmbeddings(default=[1.0, 0.0]), store)

    body = client.post("/search", json={"query": "cake", "debug": True}).json()

    assert body["debug"]["ranking_path"] == "fallback"
    assert body["debug"]["total_results"] == 2


def test_empty_query_is_400(client_for, toy_rows):
    fake = ScriptedEmbeddings()
    client = client_for(fake, InMemoryCatalogStore(toy_rows))

    response = client.post("/search", json={"query": "   "})

    assert response.status_code == 400
    assert response.json()["detail"]["error"] == "invalid_query"
    assert fake.calls == []


def test_provider_timeout_is_503_warming_up(client_for, toy_rows):
    client = client_for(ScriptedEmbeddings(error=ProviderTimeout("slow")), InMemoryCatalogStore(toy_rows))

    response = client.post("/search", json={"query": "cake"})

    assert response.status_code == 503
    detail = response.json()["detail"]
    assert detail["error"] == "provider_timeout"
    assert detail["warming_up"] is True
    assert detail["retryable"] is True


def test_store_outage_is_503_search_failed(client_for, toy_rows):
    store = InMemoryCatalogStore(toy_rows, match_error=RuntimeError("x"), fetch_error=RuntimeError("y"))
    client = client_for(ScriptedEmbeddings(), store)

    response = client.post("/search", json={"query": "cake"})

    assert response.status_code == 503
    assert response.json()["detail"]["error"] == "search_failed"
    assert response.json()["detail"]["warming_up"] is False


def test_list_products(client_for, toy_rows):
    client = client_for(ScriptedEmbeddings(), InMemoryCatalogStore(toy_rows))

    body = client.get("/products").json()

    assert [p["id"] for p in body["products"]] == ["3", "2", "1"]


def test_analyze_image(client_for):
    fake = ScriptedEmbeddings(default=[0.25, 0.5])
    client = client_for(fake, InMemoryCatalogStore())

    response = client.post("/analyze", json={"image_url": "https://img.example/a.jpg"})

    assert response.status_code == 200
    assert response.json() == {"embedding": [0.25, 0.5]}


def test_analyze_requires_image_url(client_for):
    client = client_for(ScriptedEmbeddings(), InMemoryCatalogStore())

    assert client.post("/analyze", json={}).status_code == 400


def test_keep_alive(client_for):
    ok = client_for(ScriptedEmbeddings(), InMemoryCatalogStore()).get("/keep-alive")
    assert ok.status_code == 200
    assert ok.json()["success"] is True

    cold = client_for(ScriptedEmbeddings(error=ProviderTimeout("cold")), InMemoryCatalogStore()).get("/keep-alive")
    assert cold.status_code == 503
    assert cold.json()["success"] is False


def test_health(client_for):
    client = client_for(ScriptedEmbeddings(), InMemoryCatalogStore())
    assert client.get("/health").json() == {"status": "ok"}
