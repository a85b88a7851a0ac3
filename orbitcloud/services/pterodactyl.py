"""
Pterodactyl panel, application API (``/api/application``).

Account creation returns ``None`` on any failure so the caller can retry on a
later poll; instance creation raises ``ProvisioningError``.
"""
import logging
import secrets
import string
from dataclasses import dataclass

import httpx

from orbitcloud.core.errors import ProvisioningError
from orbitcloud.models.product import Product
from orbitcloud.models.transaction import PanelAccount

logger = logging.getLogger(__name__)

ALLOCATION_PAGE_SIZE = 100


@dataclass
class Allocation:
    id: int
    ip: str
    port: int


@dataclass
class ServerInstance:
    id: int
    uuid: str | None
    identifier: str | None
    ip: str
    port: int


def generate_password(length: int = 8) -> str:
    alphabet = string.ascii_lowercase + string.digits
    # suffix guarantees the panel's upper/lower/digit/symbol rules are met
    return "".join(secrets.choice(alphabet) for _ in range(length)) + "Aa1!"


def _errors(response: httpx.Response):
    try:
        return response.json().get("errors") or response.text[:300]
    except (ValueError, AttributeError):
        return response.text[:300]


class PterodactylClient:
    def __init__(
        self,
        panel_url: str,
        api_key: str,
        node_id: int,
        eggs: dict,
        timeout: float = 30,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.panel_url = panel_url
        self.node_id = node_id
        self.eggs = eggs
        self._http = httpx.AsyncClient(
            base_url=f"{panel_url}/api/application",
            timeout=timeout,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    async def create_account(self, username: str, email: str) -> PanelAccount | None:
        password = generate_password()
        payload = {
            "email": email,
            "username": username[:60],
            "first_name": username,
            "last_name": "User",
            "password": password,
        }
        try:
            r = await self._http.post("/users", json=payload)
            r.raise_for_status()
            attrs = r.json()["attributes"]
            return PanelAccount(id=int(attrs["id"]), username=attrs.get("username") or username, password=password)
        except httpx.HTTPStatusError as e:
            logger.error("panel create user %s: HTTP %s %s", username, e.response.status_code, _errors(e.response))
        except httpx.RequestError as e:
            logger.error("panel create user %s: %s", username, e)
        except (ValueError, KeyError, TypeError) as e:
            logger.error("panel create user %s: malformed response: %s", username, e)
        return None

    async def find_free_allocation(self, node_id: int | None = None) -> Allocation | None:
        node_id = node_id or self.node_id
        try:
            r = await self._http.get(f"/nodes/{node_id}/allocations", params={"per_page": ALLOCATION_PAGE_SIZE})
            r.raise_for_status()
            for item in r.json().get("data", []):
                attrs = item["attributes"]
                if not attrs.get("assigned"):
                    return Allocation(id=int(attrs["id"]), ip=attrs.get("alias") or attrs["ip"], port=int(attrs["port"]))
        except (httpx.HTTPError, ValueError, KeyError, TypeError, AttributeError) as e:
            logger.error("panel allocations node %s: %s", node_id, e)
        return None

    async def create_instance(self, account_id: int, product: Product, username: str) -> ServerInstance:
        egg = self.eggs.get(product.category)
        if not egg:
            raise ProvisioningError(f"No egg configured for category {product.category}")

        allocation = await self.find_free_allocation()
        if allocation is None:
            raise ProvisioningError("No allocations available on node")

        data = {
            "name": f"{product.name} - {username}",
            "user": account_id,
            "egg": egg["egg_id"],
            "docker_image": egg["docker_image"],
            "startup": egg["startup"],
            "environment": {
                "MAX_PLAYERS": "50",
                "CMD_RUN": "npm start",
            },
            "limits": {
                "memory": product.ram,
                "swap": 0,
                "disk": product.disk,
                "io": 500,
                "cpu": product.cpu,
            },
            "feature_limits": {"databases": 1, "allocations": 0, "backups": 0},
            "allocation": {"default": allocation.id},
            "nest": egg["nest_id"],
            "node": self.node_id,
        }
        try:
            r = await self._http.post("/servers", json=data)
            r.raise_for_status()
            attrs = r.json()["attributes"]
            return ServerInstance(
                id=int(attrs["id"]),
                uuid=attrs.get("uuid"),
                identifier=attrs.get("identifier"),
                ip=allocation.ip,
                port=allocation.port,
            )
        except httpx.HTTPStatusError as e:
            logger.error("panel create server for %s: HTTP %s %s", username, e.response.status_code, _errors(e.response))
            raise ProvisioningError("Failed to deploy server on panel") from e
        except httpx.RequestError as e:
            logger.error("panel create server for %s: %s", username, e)
            raise ProvisioningError("Failed to deploy server on panel") from e
        except (ValueError, KeyError, TypeError) as e:
            raise ProvisioningError("Invalid response from panel") from e
