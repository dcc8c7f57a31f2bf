"""
HTTP client for the business registry (clients, basins, logistic entities,
pickup orders).

Every call is bounded by the configured timeout. Transport failures,
timeouts and 5xx answers surface as ``RegistryUnavailableError``; refused
writes as ``RegistryWriteError``.
"""

import logging
from typing import Any, Protocol, TypeVar

import httpx
from pydantic import BaseModel

from pickup_intake.config import Settings
from pickup_intake.exceptions import RegistryUnavailableError, RegistryWriteError
from pickup_intake.schemas.matching import EntityRole
from pickup_intake.schemas.registry import (
    BasinRecord,
    ClientRecord,
    CreatedEntity,
    LogisticEntityCandidate,
    LogisticEntityCreate,
    PickupOrderPayload,
)

logger = logging.getLogger("intake.registry")

AUTO_CREATED_NOTE = "Created automatically from PDF extraction"

ModelT = TypeVar("ModelT", bound=BaseModel)


class Registry(Protocol):
    async def suggestions(self, role: EntityRole, name: str) -> list[LogisticEntityCandidate]: ...

    async def list_clients(self) -> list[ClientRecord]: ...

    async def list_basins(self) -> list[BasinRecord]: ...

    async def create_logistic_entity(
        self, role: EntityRole, name: str, contact: dict[str, str | None] | None = None
    ) -> CreatedEntity: ...

    async def create_pickup_order(self, payload: PickupOrderPayload) -> dict[str, Any]: ...

    async def ping(self) -> bool: ...


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict):
        return str(body.get("message") or body.get("detail") or body)
    return str(body)


class RegistryClient:
    """Async registry API client backed by ``httpx.AsyncClient``."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        api_token: str = "",
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        headers = {"Accept": "application/json"}
        if api_token:
            headers["Authorization"] = f"Bearer {api_token}"
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            headers=headers,
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: Any) -> "RegistryClient":
        return cls(
            settings.registry_base_url,
            timeout=settings.registry_timeout_seconds,
            api_token=settings.registry_api_token,
            **kwargs,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "RegistryClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def _send(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            logger.warning("Registry %s %s timed out", method, path)
            raise RegistryUnavailableError(f"Registry timed out on {method} {path}") from e
        except httpx.RequestError as e:
            logger.warning("Registry %s %s unreachable: %s", method, path, e)
            raise RegistryUnavailableError(f"Registry unreachable: {e}") from e

        if response.status_code >= 500:
            raise RegistryUnavailableError(
                f"Registry error {response.status_code} on {method} {path}: {_error_message(response)}"
            )
        return response

    async def _get_list(self, path: str, model: type[ModelT], **kwargs: Any) -> list[ModelT]:
        response = await self._send("GET", path, **kwargs)
        if response.is_error:
            raise RegistryUnavailableError(
                f"Registry rejected GET {path} ({response.status_code}): {_error_message(response)}"
            )
        try:
            return [model.model_validate(row) for row in response.json()]
        except (ValueError, TypeError) as e:
            # pydantic.ValidationError is a ValueError
            raise RegistryUnavailableError(f"Malformed registry response on GET {path}") from e

    async def _post(self, path: str, payload: dict[str, Any]) -> Any:
        try:
            response = await self._send("POST", path, json=payload)
        except RegistryUnavailableError as e:
            raise RegistryWriteError(str(e)) from e
        if response.is_error:
            raise RegistryWriteError(_error_message(response), status_code=response.status_code)
        try:
            return response.json()
        except ValueError as e:
            raise RegistryWriteError(f"Malformed registry response on POST {path}") from e

    # ── Reads ──

    async def suggestions(self, role: EntityRole, name: str) -> list[LogisticEntityCandidate]:
        """Same-role logistic entities for ``name``; may carry precomputed exact matches."""
        return await self._get_list(
            "/logistics/suggestions",
            LogisticEntityCandidate,
            params={"type": role.registry_type, "q": name},
        )

    async def list_clients(self) -> list[ClientRecord]:
        return await self._get_list("/clients", ClientRecord)

    async def list_basins(self) -> list[BasinRecord]:
        return await self._get_list("/basins", BasinRecord)

    async def ping(self) -> bool:
        try:
            await self._send("GET", "/health")
        except RegistryUnavailableError:
            return False
        return True

    # ── Writes ──

    async def create_logistic_entity(
        self,
        role: EntityRole,
        name: str,
        contact: dict[str, str | None] | None = None,
    ) -> CreatedEntity:
        contact = contact or {}
        request = LogisticEntityCreate(
            name=name.strip(),
            entity_type=role.registry_type,
            address=contact.get("address"),
            city=contact.get("city"),
            phone=contact.get("phone"),
            email=contact.get("email"),
            notes=AUTO_CREATED_NOTE,
        )
        body = await self._post("/logistics", request.model_dump(by_alias=True, exclude_none=True))
        try:
            created = CreatedEntity.model_validate(body)
        except ValueError as e:
            raise RegistryWriteError(f"Registry returned no id for {name}") from e
        logger.info("Created %s entity %s (%s)", role.value, created.id, name)
        return created

    async def create_pickup_order(self, payload: PickupOrderPayload) -> dict[str, Any]:
        record = await self._post("/pickup-orders", payload.to_wire())
        logger.info("Created pickup order %s", payload.order_number)
        return record
