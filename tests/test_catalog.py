"""Tests for the stock API client and the in-memory catalog."""

from unittest.mock import MagicMock

import pytest
import requests

from stock_intake import catalog as catalog_module
from stock_intake.catalog import CatalogClient, InMemoryCatalog, get_catalog_client, product_payload
from stock_intake.config import reset_settings
from stock_intake.errors import CatalogError
from stock_intake.models import CatalogProduct, CategoryTag, UnitOfMeasure

API_PRODUCT = {
    "id": 7,
    "codigo": "OL-5W30-1L",
    "nome": "Óleo Mobil Super 5W30 1L",
    "marca": "Mobil",
    "categoria": "oleo_lubrificante",
    "unidade": "LITRO",
    "volumeUnidade": 1,
    "quantidade": 24,
    "estoqueMinimo": 5,
    "precoCompra": 28.5,
    "precoCompraAtual": 29.0,
    "precoVenda": 45.0,
    "localizacao": "Prateleira A",
    "ativo": True,
}


def _response(status=200, body=None):
    resp = MagicMock()
    resp.status_code = status
    resp.ok = status < 400
    resp.json.return_value = body
    return resp


def _client(resp=None, exc=None):
    session = MagicMock()
    session.headers = {}
    if exc is not None:
        session.request.side_effect = exc
    else:
        session.request.return_value = resp
    return CatalogClient("https://oficina.example.com/", token="tok", timeout=3, session=session), session


class TestCatalogProduct:
    def test_parses_api_record(self):
        p = CatalogProduct.model_validate(API_PRODUCT)
        assert p.name == "Óleo Mobil Super 5W30 1L"
        assert p.category == CategoryTag.OIL_LUBRICANT
        assert p.unit_of_measure == UnitOfMeasure.LITER
        assert p.quantity_on_hand == 24
        assert p.unit_price == 45.0

    def test_payload_keeps_unknown_fields(self):
        p = CatalogProduct.model_validate(API_PRODUCT)
        payload = product_payload(p, quantity_on_hand=30)
        assert payload["quantidade"] == 30
        assert payload["localizacao"] == "Prateleira A"
        assert payload["categoria"] == "OLEO_LUBRIFICANTE"


class TestCatalogClient:
    def test_search(self):
        client, session = _client(_response(body={"data": [API_PRODUCT, {"nome": "no id"}]}))
        products = client.search("oleo mobil super")
        assert [p.id for p in products] == [7]
        method, url = session.request.call_args.args
        assert method == "GET"
        assert url == "https://oficina.example.com/api/produtos"
        assert session.request.call_args.kwargs["params"] == {"busca": "oleo mobil super"}
        assert session.request.call_args.kwargs["timeout"] == 3
        assert session.headers["Authorization"] == "Bearer tok"

    def test_search_empty_result(self):
        client, _ = _client(_response(body={"data": []}))
        assert client.search("nada") == []

    def test_create(self):
        client, session = _client(_response(201, {"data": API_PRODUCT}))
        created = client.create_product({"nome": "Óleo Mobil Super 5W30 1L"})
        assert created.id == 7
        assert session.request.call_args.args[0] == "POST"

    def test_update(self):
        client, session = _client(_response(body={"data": API_PRODUCT}))
        client.update_product(7, {"quantidade": 30})
        method, url = session.request.call_args.args
        assert method == "PUT"
        assert url.endswith("/api/produtos/7")
        assert session.request.call_args.kwargs["json"] == {"quantidade": 30}

    def test_http_error(self):
        client, _ = _client(_response(500, {"error": "Erro ao buscar produtos"}))
        with pytest.raises(CatalogError) as exc:
            client.search("oleo")
        assert exc.value.status_code == 500

    def test_transport_error(self):
        client, _ = _client(exc=requests.ConnectionError("refused"))
        with pytest.raises(CatalogError):
            client.list_products()

    def test_invalid_json(self):
        resp = _response()
        resp.json.side_effect = ValueError("no json")
        client, _ = _client(resp)
        with pytest.raises(CatalogError):
            client.list_products()


class TestInMemoryCatalog:
    def test_search_requires_every_keyword(self):
        catalog = InMemoryCatalog(
            [
                CatalogProduct(id=1, name="Filtro de Óleo Wega WO123"),
                CatalogProduct(id=2, name="Filtro de Ar", brand="Wega"),
            ]
        )
        assert [p.id for p in catalog.search("filtro wega")] == [1, 2]
        assert [p.id for p in catalog.search("oleo wega")] == [1]
        assert [p.id for p in catalog.search("")] == [1, 2]

    def test_create_assigns_next_id(self):
        catalog = InMemoryCatalog([CatalogProduct(id=4, name="Graxa")])
        created = catalog.create_product({"nome": "Aditivo", "quantidade": 2})
        assert created.id == 5
        assert len(catalog.list_products()) == 2

    def test_update_replaces_record(self):
        catalog = InMemoryCatalog([CatalogProduct.model_validate(API_PRODUCT)])
        updated = catalog.update_product(7, {"nome": "Óleo Mobil Super 5W30 1L", "quantidade": 30})
        assert updated.quantity_on_hand == 30
        assert updated.unit_price == 0.0
        assert "localizacao" not in updated.model_dump(by_alias=True)
        assert catalog.products == [updated]

    def test_update_unknown_product(self):
        with pytest.raises(CatalogError):
            InMemoryCatalog().update_product(1, {"nome": "x"})


class TestSharedClient:
    @pytest.fixture(autouse=True)
    def reset(self, monkeypatch):
        monkeypatch.setattr(catalog_module, "_client", None)
        reset_settings()
        yield
        reset_settings()

    def test_none_without_url(self, monkeypatch):
        monkeypatch.delenv("STOCK_API_URL", raising=False)
        assert get_catalog_client() is None

    def test_built_from_settings(self, monkeypatch):
        monkeypatch.setenv("STOCK_API_URL", "https://oficina.example.com")
        client = get_catalog_client()
        assert isinstance(client, CatalogClient)
        assert get_catalog_client() is client
