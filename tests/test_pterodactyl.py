import httpx
import pytest

from orbitcloud.core.config import DEFAULT_EGGS
from orbitcloud.core.errors import ProvisioningError
from orbitcloud.services.pterodactyl import PterodactylClient, generate_password

from tests.conftest import PANEL_URL


def test_generate_password_shape():
    pw = generate_password()
    assert len(pw) == 12
    assert pw.endswith("Aa1!")
    assert generate_password() != pw


async def test_create_account(panel, panel_api):
    account = await panel.create_account("player_one", "budi@example.com")

    assert account.id == 1
    assert account.username == "player_one"
    assert account.password.endswith("Aa1!")
    sent = panel_api.users[0]
    assert sent["email"] == "budi@example.com"
    assert sent["first_name"] == "player_one"
    assert sent["password"] == account.password


async def test_create_account_failure_returns_none(panel, panel_api):
    panel_api.fail_user = True
    assert await panel.create_account("player_one", "budi@example.com") is None


async def test_find_free_allocation_skips_assigned_and_prefers_alias(panel):
    allocation = await panel.find_free_allocation()
    assert (allocation.id, allocation.ip, allocation.port) == (7, "node1.example.com", 25566)


async def test_find_free_allocation_none_when_full(panel, panel_api):
    for a in panel_api.allocations:
        a["attributes"]["assigned"] = True
    assert await panel.find_free_allocation() is None


async def test_create_instance_sized_from_product(panel, panel_api, catalog):
    product = catalog.get_by_id("linux_1")
    instance = await panel.create_instance(4, product, "player_one")

    assert instance.uuid == "uuid-1"
    assert (instance.ip, instance.port) == ("node1.example.com", 25566)
    body = panel_api.servers[0]
    assert body["name"] == "Nano Linux - player_one"
    assert body["user"] == 4
    assert body["egg"] == DEFAULT_EGGS["linux"]["egg_id"]
    assert body["limits"]["memory"] == 1024
    assert body["limits"]["disk"] == 2048
    assert body["limits"]["cpu"] == 50
    assert body["allocation"] == {"default": 7}
    assert body["node"] == 1


async def test_create_instance_without_allocation(panel, panel_api, catalog):
    panel_api.allocations = []
    with pytest.raises(ProvisioningError, match="No allocations"):
        await panel.create_instance(4, catalog.get_by_id("node_1"), "bot_owner")
    assert panel_api.servers == []


async def test_create_instance_panel_error(panel, panel_api, catalog):
    panel_api.fail_server = True
    with pytest.raises(ProvisioningError):
        await panel.create_instance(4, catalog.get_by_id("win_1"), "rdp_user")


async def test_create_instance_unknown_category(panel_api, catalog):
    client = PterodactylClient(PANEL_URL, "ptla_test", 1, {}, transport=httpx.MockTransport(panel_api))
    with pytest.raises(ProvisioningError, match="No egg"):
        await client.create_instance(4, catalog.get_by_id("linux_1"), "player_one")
