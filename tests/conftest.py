# tests/conftest.py
# ---------------------------------------------------------------------
# Shared fixtures:
# - backend payloads shaped like the inventory backend's JSON (French keys)
# - FakeBackend: an httpx.MockTransport handler with canned routes that
#   records every request it receives
# - api_client: TestClient over main.app with the backend client dependency
#   pointed at the FakeBackend
# ---------------------------------------------------------------------

from __future__ import annotations

import json
import os

# Keep test runs from writing rotating log files
os.environ.setdefault("ENABLE_FILE_LOGGING", "false")

import httpx
import pytest


class FakeBackend:
    """Canned inventory backend answering through httpx.MockTransport."""

    def __init__(self):
        self.routes = {}
        self.calls = []

    def add(self, method, path, status_code=200, **response_kwargs):
        self.routes[(method, path)] = (status_code, response_kwargs)
        return self

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        key = (request.method, request.url.path)
        if key not in self.routes:
            return httpx.Response(404, json={"error": f"No route for {request.method} {request.url.path}"})
        status_code, response_kwargs = self.routes[key]
        return httpx.Response(status_code, **response_kwargs)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def calls_to(self, method, path):
        return [r for r in self.calls if r.method == method and r.url.path == path]

    @staticmethod
    def body(request: httpx.Request):
        return json.loads(request.content)


# ---------- Backend payloads ----------
@pytest.fixture
def sales_payload():
    """Four sales: a partly paid one with a cancelled item, an unpaid one,
    a special invoice, and a fully paid one."""
    return [
        {
            "vente_id": 1,
            "date_vente": "2025-03-01T10:00:00Z",
            "client_nom": "Awa",
            "client_telephone": "90809089",
            "montant_total": 250000,
            "montant_paye": 100000,
            "statut_paiement": "paiement_partiel",
            "is_facture_speciale": 0,
            "articles": [
                {
                    "item_id": 11,
                    "produit_id": 101,
                    "marque": "Apple",
                    "modele": "iPhone 13",
                    "stockage": "128 Go",
                    "type": "CARTON",
                    "type_carton": "A",
                    "imei": "356000000000011",
                    "quantite_vendue": 1,
                    "prix_unitaire_vente": 150000,
                    "prix_unitaire_achat": 120000,
                    "statut_vente": "actif",
                },
                {
                    "item_id": 12,
                    "produit_id": 102,
                    "marque": "Samsung",
                    "modele": "Galaxy S21",
                    "stockage": "256 Go",
                    "type": "ARRIVAGE",
                    "type_carton": None,
                    "imei": "356000000000012",
                    "quantite_vendue": 1,
                    "prix_unitaire_vente": 100000,
                    "prix_unitaire_achat": 80000,
                    "statut_vente": "annule",
                },
            ],
        },
        {
            "vente_id": 2,
            "date_vente": "2025-03-02T09:30:00Z",
            "client_nom": "Kofi",
            "client_telephone": "91234567",
            "montant_total": "80 000",
            "montant_paye": None,
            "statut_paiement": "en_attente",
            "is_facture_speciale": False,
            "articles": [
                {
                    "item_id": 21,
                    "produit_id": 201,
                    "marque": "Apple",
                    "modele": "iPhone 11",
                    "stockage": "64 Go",
                    "type": "CARTON",
                    "type_carton": "B",
                    "imei": "356000000000021",
                    "quantite_vendue": 1,
                    "prix_unitaire_vente": "80000",
                    "prix_unitaire_achat": 60000,
                    "statut_vente": None,
                }
            ],
        },
        {
            "vente_id": 3,
            "date_vente": "2025-03-02T11:00:00Z",
            "client_nom": "Awa",
            "client_telephone": "90809089",
            "montant_total": 500000,
            "montant_paye": 0,
            "statut_paiement": "en_attente",
            "is_facture_speciale": 1,
            "articles": [
                {
                    "item_id": 31,
                    "produit_id": 301,
                    "marque": "Apple",
                    "modele": "iPhone 15 Pro",
                    "stockage": "256 Go",
                    "type": "ARRIVAGE",
                    "imei": "356000000000031",
                    "quantite_vendue": 1,
                    "prix_unitaire_vente": 500000,
                    "prix_unitaire_achat": 450000,
                    "statut_vente": "actif",
                    "is_special_sale_item": 1,
                    "source_achat_id": 9001,
                }
            ],
        },
        {
            "vente_id": 4,
            "date_vente": "2025-03-03T15:45:00Z",
            "client_nom": "Kofi",
            "client_telephone": None,
            "montant_total": 70000,
            "montant_paye": 70000,
            "statut_paiement": "payee_integralement",
            "is_facture_speciale": 0,
            "articles": [
                {
                    "item_id": 41,
                    "produit_id": 401,
                    "marque": "Samsung",
                    "modele": "Galaxy A54",
                    "stockage": "128 Go",
                    "type": "CARTON",
                    "type_carton": "A",
                    "imei": "356000000000041",
                    "quantite_vendue": 1,
                    "prix_unitaire_vente": 70000,
                    "prix_unitaire_achat": 50000,
                    "statut_vente": "actif",
                }
            ],
        },
    ]


@pytest.fixture
def stock_summary_payload():
    return [
        {"marque": "Apple", "modele": "iPhone 13", "stockage": "128 Go", "type": "CARTON",
         "type_carton": "A", "total_quantite_en_stock": 12},
        {"marque": "Samsung", "modele": "Galaxy S21", "stockage": "256 Go", "type": "ARRIVAGE",
         "type_carton": None, "total_quantite_en_stock": "3"},
        {"marque": "Apple", "modele": "iPhone 11", "stockage": "64 Go", "type": "CARTON",
         "type_carton": "B", "total_quantite_en_stock": 0},
    ]


@pytest.fixture
def daily_comparison_payload():
    return [
        {"marque": "Apple", "modele": "iPhone 13", "stockage": "128 Go", "type": "CARTON",
         "type_carton": "A", "stock_hier": 10, "ajouts_jour": 3, "ventes_jour": 2,
         "retours_jour": 1, "rendus_jour": 0, "stock_aujourdhui": None},
        {"marque": "Samsung", "modele": "Galaxy S21", "stockage": "256 Go", "type": "ARRIVAGE",
         "type_carton": None, "stock_hier": 5, "ajouts_jour": 0, "ventes_jour": 1,
         "retours_jour": 0, "rendus_jour": 0, "stock_aujourdhui": 2},
        {"marque": "Apple", "modele": "iPhone 11", "stockage": "64 Go", "type": "CARTON",
         "type_carton": "B", "stock_hier": 1, "ajouts_jour": 0, "ventes_jour": 1,
         "retours_jour": 0, "rendus_jour": 0, "stock_aujourdhui": ""},
    ]


@pytest.fixture
def special_orders_payload():
    return [
        {"order_id": 1, "client_nom": "Awa", "fournisseur_nom": "Lomé Import", "marque": "Apple",
         "modele": "iPhone 15 Pro", "imei": 356000000000031, "prix_vente_client": 500000,
         "prix_achat_fournisseur": 450000, "montant_paye": 500000, "montant_restant": 0,
         "statut": "vendu"},
        {"order_id": 2, "client_nom": "Kofi", "fournisseur_nom": "Dubaï Phones", "marque": "Samsung",
         "modele": "Galaxy S24", "imei": None, "prix_vente_client": "420000",
         "prix_achat_fournisseur": 380000, "montant_paye": 420000, "montant_restant": 0,
         "statut": "reçu"},
        {"order_id": 3, "client_nom": "Ama", "fournisseur_nom": "Lomé Import", "marque": "Apple",
         "modele": "iPhone 14", "imei": None, "prix_vente_client": 350000,
         "prix_achat_fournisseur": 300000, "montant_paye": 100000, "montant_restant": 250000,
         "statut": "en_attente"},
        {"order_id": 4, "client_nom": "Yao", "fournisseur_nom": "Dubaï Phones", "marque": "Tecno",
         "modele": "Camon 20", "imei": None, "prix_vente_client": 120000,
         "prix_achat_fournisseur": 90000, "montant_paye": 0, "montant_restant": 120000,
         "statut": "annulé"},
    ]


@pytest.fixture
def products_payload():
    return [
        {"id": 1, "marque": "Apple", "modele": "iPhone 13", "stockage": "128 Go", "type": "CARTON",
         "imei": 356000000000011, "status": "active"},
        {"id": 2, "marque": "Apple", "modele": "iPhone 11", "stockage": "64 Go", "type": "CARTON",
         "imei": "356000000000021", "status": "active"},
        {"id": 3, "marque": "Apple", "modele": "iPhone 13", "stockage": "1 To", "type": "ARRIVAGE",
         "imei": "356000000000013", "status": "vendu"},
        {"id": 4, "marque": "Samsung", "modele": "Galaxy S21", "stockage": "256 Go", "type": "ARRIVAGE",
         "imei": "356000000000012", "status": "active"},
        {"id": 5, "marque": None, "modele": "Mystery", "stockage": "32 Go", "type": "CARTON",
         "imei": "356000000000099", "status": "active"},
    ]


# ---------- Fake backend + API client ----------
@pytest.fixture
def backend(sales_payload, stock_summary_payload, daily_comparison_payload,
            special_orders_payload, products_payload):
    fake = FakeBackend()
    fake.add("GET", "/api/ventes", json=sales_payload)
    fake.add("GET", "/api/reports/stock-summary", json=stock_summary_payload)
    fake.add("GET", "/api/reports/daily-stock-comparison", json=daily_comparison_payload)
    fake.add("GET", "/api/special-orders", json=special_orders_payload)
    fake.add("GET", "/api/products", json=products_payload)
    return fake


@pytest.fixture
def api_client(backend):
    from fastapi.testclient import TestClient

    from app.api.dependencies import get_backend_client
    from app.core.backend_client import BackendClient
    from main import app

    async def override_backend_client():
        async with BackendClient("http://backend.test", transport=backend.transport) as client:
            yield client

    app.dependency_overrides[get_backend_client] = override_backend_client
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()
