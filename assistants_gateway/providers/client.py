"""Low-level provider client over httpx."""

import httpx

from assistants_gateway.clients.models import AzureOptions
from assistants_gateway.errors import UpstreamHttpError
from assistants_gateway.logging.audit import RequestTimer, get_audit_logger
from assistants_gateway.providers.cache import VectorStoreCache, get_vector_store_cache
from assistants_gateway.providers.resources import AssistantFiles, VectorStores

DEFAULT_BASE_URL = "https://api.openai.com/v1"


class ProviderClient:
    """Configured connection to an OpenAI-compatible provider.

    Auth, organization, default headers/query and proxy are fixed at
    construction and apply to every call made through this instance.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str | None = None,
        organization: str | None = None,
        default_headers: dict[str, str] | None = None,
        default_query: dict[str, str] | None = None,
        proxy: str | None = None,
        timeout: float = 60.0,
        azure_options: AzureOptions | None = None,
        vector_store_cache: VectorStoreCache | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key
        self.base_url = (base_url or DEFAULT_BASE_URL).rstrip("/")
        self.organization = organization
        self.proxy = proxy
        self.azure_options = azure_options
        self.default_query = default_query

        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {api_key}",
        }
        if organization:
            headers["OpenAI-Organization"] = organization
        headers.update(default_headers or {})
        self.default_headers = headers

        self._http = httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            params=default_query,
            proxy=proxy,
            timeout=httpx.Timeout(timeout, connect=10.0),
            transport=transport,
        )

        self.assistant_files = AssistantFiles(self)
        self.vector_stores = VectorStores(self, vector_store_cache or get_vector_store_cache())

        # Set by the initializer for handlers that need the originating request
        self.request_context = None
        self.response_context = None

    async def request(
        self,
        method: str,
        path: str,
        json: dict | None = None,
        params: dict | None = None,
        headers: dict | None = None,
    ):
        logger = get_audit_logger()
        try:
            with RequestTimer() as timer:
                response = await self._http.request(
                    method, path, json=json, params=params, headers=headers
                )
        except httpx.ConnectError:
            raise UpstreamHttpError(502, method, path, "Cannot reach upstream provider")
        except httpx.TimeoutException:
            raise UpstreamHttpError(504, method, path, "Upstream provider timed out")
        except httpx.HTTPError as e:
            raise UpstreamHttpError(502, method, path, f"Upstream error: {e}")

        logger.debug(
            "Upstream call",
            extra={"audit_data": {
                "method": method,
                "path": path,
                "upstream_status": response.status_code,
                "latency_ms": timer.elapsed_ms,
            }},
        )

        body = _parse_body(response)
        if not response.is_success:
            raise UpstreamHttpError(response.status_code, method, str(response.url), body)
        return body

    async def get(self, path: str, params: dict | None = None, headers: dict | None = None):
        return await self.request("GET", path, params=params, headers=headers)

    async def post(self, path: str, json: dict | None = None, headers: dict | None = None):
        return await self.request("POST", path, json=json, headers=headers)

    async def delete(self, path: str, headers: dict | None = None):
        return await self.request("DELETE", path, headers=headers)

    @property
    def is_closed(self) -> bool:
        return self._http.is_closed

    async def close(self) -> None:
        if not self._http.is_closed:
            await self._http.aclose()


def _parse_body(response: httpx.Response):
    if not response.content:
        return {}
    try:
        return response.json()
    except ValueError:
        return response.text
