"""HTTP client for the simulation/workflow API and its Fuseki RDF store."""

from typing import Any, Dict, Optional

import asyncio

import aiohttp

from core.exceptions import UpstreamError
from core.logging import get_logger, log_upstream_call

logger = get_logger(__name__)


class SimulationClient:
    """Async HTTP client for the simulation backend.

    Non-2xx answers raise :class:`UpstreamError` carrying the upstream
    ``detail`` message when one is present.
    """

    def __init__(self, base_url: str, timeout: int = 30):
        """Initialize client with base URL and timeout.

        Args:
            base_url: Base URL of the simulation API (e.g., http://localhost:8000)
            timeout: Default request timeout in seconds
        """
        self._base_url = base_url.rstrip('/')
        self._timeout = aiohttp.ClientTimeout(total=timeout)

    async def _request(
        self,
        method: str,
        path: str,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        token: Optional[str] = None,
    ) -> Any:
        headers = {"Authorization": f"Bearer {token}"} if token else None
        url = f"{self._base_url}{path}"

        try:
            async with aiohttp.ClientSession(timeout=self._timeout) as session:
                async with session.request(method, url, json=json, params=params,
                                           headers=headers) as response:
                    if response.status >= 400:
                        detail = await self._error_detail(response)
                        log_upstream_call(logger, method, path, response.status, False, detail=detail)
                        raise UpstreamError(detail, upstream_status=response.status)

                    body = await response.json(content_type=None)
                    log_upstream_call(logger, method, path, response.status, True)
                    return body
        except aiohttp.ClientError as e:
            log_upstream_call(logger, method, path, None, False, error=str(e))
            raise UpstreamError(f"Simulation API unreachable: {e}") from e
        except asyncio.TimeoutError as e:
            log_upstream_call(logger, method, path, None, False, error="timeout")
            raise UpstreamError(f"Simulation API timed out after {self._timeout.total}s") from e
        except ValueError as e:
            log_upstream_call(logger, method, path, None, False, error=str(e))
            raise UpstreamError("Simulation API returned an invalid response") from e

    @staticmethod
    async def _error_detail(response: aiohttp.ClientResponse) -> str:
        text = await response.text()
        try:
            payload = await response.json(content_type=None)
        except ValueError:
            return text or f"Upstream error {response.status}"
        if isinstance(payload, dict) and payload.get("detail"):
            return str(payload["detail"])
        return text or f"Upstream error {response.status}"

    async def health_check(self) -> Dict[str, Any]:
        return await self._request("GET", "/health")

    async def fuseki_ping(self) -> Dict[str, Any]:
        return await self._request("GET", "/fuseki/ping")

    async def ingest_microstructure(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("POST", "/ingest/microstructure", json=payload)

    async def run_sofc_workflow(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Run the SOFC workflow. Returns ``{"kpis": [...], "run": "<run id>"}``."""
        return await self._request("POST", "/workflows/sofc/run", json=payload)

    async def load_rdf(self, data: str, format: str = "turtle") -> Dict[str, Any]:
        return await self._request("POST", "/rdf/load", json={"data": data, "format": format})

    async def get_workflow_run(self, run: str) -> Dict[str, Any]:
        """Triples describing a workflow run: ``{run, kpi?, unit?, triples: [...]}``."""
        return await self._request("GET", "/workflow-run", params={"run": run})

    async def get_user_stats(self, token: Optional[str]) -> Dict[str, Any]:
        return await self._request("GET", "/user/stats", token=token)

    async def update_user_stats(self, stats: Dict[str, Any], token: Optional[str]) -> Dict[str, Any]:
        return await self._request("POST", "/user/stats/update", json=stats, token=token)
