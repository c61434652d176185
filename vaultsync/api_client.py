"""HTTP client for the remote account service."""

import logging
from typing import Any, List, Optional

import httpx
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator
from pydantic import ValidationError as PydanticValidationError

from . import config
from .errors import MalformedResponse, RemoteFailure
from .models import CredentialRecord

logger = logging.getLogger(__name__)


class AccountItem(BaseModel):
    """One credential as sent by the service. Older servers call the id ``rid``."""

    model_config = ConfigDict(extra="ignore")

    id: int = Field(validation_alias=AliasChoices("id", "rid"))
    website: str
    account: str
    password: str

    def to_record(self) -> CredentialRecord:
        return CredentialRecord(id=self.id, website=self.website, account=self.account, password=self.password)


class QueryData(BaseModel):
    """Query payload. Only a full pull has to carry ``accounts``."""

    model_config = ConfigDict(extra="ignore")

    pull_mode: str
    update_time: int
    accounts: Optional[List[AccountItem]] = None

    @model_validator(mode="after")
    def _accounts_for_full_pull(self) -> "QueryData":
        if self.accounts is None:
            if self.pull_mode == config.PULL_ALL:
                raise ValueError("PULL_ALL response has no accounts")
            self.accounts = []
        return self


class ApiResponse(BaseModel):
    """Envelope shared by every endpoint: ``code == 0`` is success."""

    model_config = ConfigDict(extra="ignore")

    code: int
    msg: str
    data: Optional[Any] = None

    @property
    def ok(self) -> bool:
        return self.code == config.SUCCESS_CODE


class QueryResponse(BaseModel):
    code: int
    msg: str
    data: QueryData


def _get_headers(token: str) -> dict[str, str]:
    """Get common headers for API requests."""
    return {
        "Authorization": f"Bearer {token}",
        "Content-Type": "application/json",
    }


class AccountApiClient:
    """Async client for ``/account``. Owns its httpx client unless one is passed in."""

    def __init__(
        self,
        base_url: str,
        token: str,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = config.REQUEST_TIMEOUT_SECONDS,
    ):
        self.base_url = base_url.rstrip("/")
        self._token = token
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(timeout, connect=config.CONNECT_TIMEOUT_SECONDS),
            limits=httpx.Limits(max_keepalive_connections=5),
        )

    async def __aenter__(self) -> "AccountApiClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    async def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        try:
            response = await self._client.request(
                method, self._url(path), headers=_get_headers(self._token), **kwargs
            )
        except httpx.TimeoutException as e:
            raise RemoteFailure("Request timed out") from e
        except httpx.HTTPError as e:
            raise RemoteFailure(f"Connection failed: {e}") from e

        if response.is_error:
            raise RemoteFailure(response.reason_phrase or "Request failed", status=response.status_code)
        try:
            payload = response.json()
        except ValueError as e:
            raise MalformedResponse(f"{method} {path}: body is not JSON") from e
        if not isinstance(payload, dict):
            raise MalformedResponse(f"{method} {path}: expected a JSON object")
        return payload

    async def _mutate(self, method: str, body: dict[str, Any]) -> ApiResponse:
        payload = await self._request(method, config.ACCOUNT_PATH, json=body)
        try:
            return ApiResponse.model_validate(payload)
        except PydanticValidationError as e:
            raise MalformedResponse(f"{method} {config.ACCOUNT_PATH}: missing required fields") from e

    async def fetch_accounts(self, update_time: int) -> QueryData:
        """
        Ask for every record changed since ``update_time``.

        Raises:
            RemoteFailure: Transport error, HTTP error, or non-zero code
            MalformedResponse: Missing fields or an unknown pull mode
        """
        payload = await self._request("GET", config.ACCOUNT_PATH, params={"update_time": update_time})
        try:
            envelope = ApiResponse.model_validate(payload)
        except PydanticValidationError as e:
            raise MalformedResponse("Query response is missing code or msg") from e
        if not envelope.ok:
            raise RemoteFailure(envelope.msg, code=envelope.code)
        try:
            data = QueryResponse.model_validate(payload).data
        except PydanticValidationError as e:
            raise MalformedResponse(f"Query response data is incomplete: {e.error_count()} errors") from e
        if data.pull_mode not in (config.PULL_ALL, config.PULL_NOTHING):
            raise MalformedResponse(f"Unsupported pull_mode {data.pull_mode!r}")
        logger.debug(f"Fetched accounts since {update_time}: {data.pull_mode}, {len(data.accounts)} records")
        return data

    async def insert_account(self, website: str, account: str, password: str) -> ApiResponse:
        return await self._mutate("POST", {"website": website, "account": account, "password": password})

    async def update_account(self, record_id: int, website: str, account: str, password: str) -> ApiResponse:
        return await self._mutate(
            "PUT", {"id": record_id, "website": website, "account": account, "password": password}
        )

    async def delete_account(self, record_id: int) -> ApiResponse:
        return await self._mutate("DELETE", {"id": record_id})

    async def verify(self) -> bool:
        """Return True when the service accepts the bearer token."""
        try:
            response = await self._client.get(self._url(config.VERIFY_PATH), headers=_get_headers(self._token))
        except httpx.HTTPError as e:
            raise RemoteFailure(f"Connection failed: {e}") from e
        return response.is_success
