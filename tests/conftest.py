import asyncio
import json
import os
import tempfile
from datetime import datetime, timedelta, timezone

# keep the module-level app in orbitcloud.main from writing into the checkout
os.environ.setdefault("DB_PATH", tempfile.mkdtemp(prefix="orbitcloud-test-"))

import httpx
import pytest

from orbitcloud.core.config import DEFAULT_EGGS
from orbitcloud.db.store import JsonStore
from orbitcloud.models.user import User
from orbitcloud.repositories import user_repo
from orbitcloud.repositories.product_repo import load_catalog
from orbitcloud.services.orders import OrderService
from orbitcloud.services.pakasir import PakasirClient
from orbitcloud.services.pterodactyl import PterodactylClient

PAKASIR_URL = "https://pakasir.test/api"
PANEL_URL = "https://panel.test"


class FakeClock:
    def __init__(self, start=datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class FakePakasir:
    """In-memory stand-in for the Pakasir HTTP API."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.statuses: dict[str, str] = {}
        self.reference = "QR123"
        self.unique_suffix = 0
        self.create_status = 200
        self.create_payload = None
        self.detail_error = False

    def calls(self, endpoint: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path.endswith(endpoint)]

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(0)
        self.requests.append(request)
        path = request.url.path

        if path.endswith("/transactioncreate/qris"):
            if self.create_status != 200:
                return httpx.Response(self.create_status, json={"message": "gateway down"})
            if self.create_payload is not None:
                return httpx.Response(200, json=self.create_payload)
            body = json.loads(request.content)
            return httpx.Response(200, json={
                "payment": {
                    "project": body["project"],
                    "order_id": body["order_id"],
                    "amount": body["amount"],
                    "payment_number": self.reference,
                    "total_payment": body["amount"] + self.unique_suffix,
                    "expired_at": "2026-01-01T12:30:00Z",
                }
            })

        if path.endswith("/transactiondetail"):
            if self.detail_error:
                return httpx.Response(500, text="boom")
            order_id = request.url.params["order_id"]
            return httpx.Response(200, json={
                "transaction": {"order_id": order_id, "status": self.statuses.get(order_id, "pending")}
            })

        if path.endswith("/paymentsimulation"):
            body = json.loads(request.content)
            if body["order_id"] == "INV-reject":
                return httpx.Response(400, json={"message": "Transaction not found"})
            self.statuses[body["order_id"]] = "completed"
            return httpx.Response(200, json={"status": "ok"})

        return httpx.Response(404)


class FakePanel:
    """In-memory stand-in for the Pterodactyl application API."""

    def __init__(self):
        self.users: list[dict] = []
        self.servers: list[dict] = []
        self.fail_user = False
        self.fail_server = False
        self.allocations = [
            {"object": "allocation", "attributes": {"id": 3, "ip": "10.0.0.5", "alias": None, "port": 25565, "assigned": True}},
            {"object": "allocation", "attributes": {"id": 7, "ip": "10.0.0.5", "alias": "node1.example.com", "port": 25566, "assigned": False}},
        ]

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(0)
        path = request.url.path
        assert request.headers["Authorization"] == "Bearer ptla_test"

        if request.method == "POST" and path == "/api/application/users":
            if self.fail_user:
                return httpx.Response(422, json={"errors": [{"code": "ValidationException", "detail": "The username has already been taken."}]})
            body = json.loads(request.content)
            self.users.append(body)
            return httpx.Response(201, json={
                "object": "user",
                "attributes": {"id": len(self.users), "username": body["username"], "email": body["email"]},
            })

        if request.method == "GET" and path.endswith("/allocations"):
            return httpx.Response(200, json={"object": "list", "data": self.allocations})

        if request.method == "POST" and path == "/api/application/servers":
            if self.fail_server:
                return httpx.Response(500, json={"errors": [{"detail": "node offline"}]})
            body = json.loads(request.content)
            self.servers.append(body)
            n = len(self.servers)
            return httpx.Response(201, json={
                "object": "server",
                "attributes": {"id": n, "uuid": f"uuid-{n}", "identifier": f"ident{n}"},
            })

        return httpx.Response(404)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(tmp_path):
    return JsonStore(tmp_path / "db")


@pytest.fixture
def catalog():
    return load_catalog()


@pytest.fixture
def pakasir():
    return FakePakasir()


@pytest.fixture
def panel_api():
    return FakePanel()


@pytest.fixture
def gateway(pakasir):
    return PakasirClient(PAKASIR_URL, "orbit", "key123", transport=httpx.MockTransport(pakasir))


@pytest.fixture
def panel(panel_api):
    return PterodactylClient(PANEL_URL, "ptla_test", 1, DEFAULT_EGGS, transport=httpx.MockTransport(panel_api))


@pytest.fixture
def service(store, catalog, gateway, panel, clock):
    return OrderService(store, catalog, gateway, panel, sandbox=True, clock=clock)


@pytest.fixture
def user(store):
    return user_repo.save(store, User(
        id="user_1",
        name="Budi Santoso",
        email="budi@example.com",
        password_hash="x",
    ))
