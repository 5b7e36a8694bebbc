"""
Resilient outbound HTTP client

Used by the billing backend lookups. Provides:
- Bounded retries with a delay that grows linearly with the attempt number
- A fixed absolute timeout on every attempt
- Egress proxy routing for the IP-restricted partner domain
"""
import asyncio
from typing import Dict, Optional, Union
from urllib.parse import urlparse

import httpx

from helpdesk.config import get_settings
from helpdesk.utils.logger import get_logger

settings = get_settings()
logger = get_logger(__name__)


class ResilientHttpClient:
    """
    HTTP client with retry, per-attempt timeout and partner proxy routing
    """

    def __init__(
        self,
        timeout: Optional[float] = None,
        partner_domain: Optional[str] = None,
        proxy_url: Optional[str] = None,
    ):
        self.timeout = timeout if timeout is not None else settings.http_timeout_seconds
        self.partner_domain = (partner_domain if partner_domain is not None else settings.partner_domain).lower()
        self.proxy_url = proxy_url if proxy_url is not None else (settings.partner_proxy_url or None)

    def uses_proxy(self, url: str) -> bool:
        """True when the URL targets the partner domain and a proxy is configured"""
        if not self.proxy_url or not self.partner_domain:
            return False
        host = (urlparse(url).hostname or "").lower()
        return host == self.partner_domain or host.endswith("." + self.partner_domain)

    def _build_client(self, url: str) -> httpx.AsyncClient:
        if self.uses_proxy(url):
            logger.info(f"Routing through proxy {self.proxy_url} for {url}")
            return httpx.AsyncClient(timeout=self.timeout, proxy=self.proxy_url)
        return httpx.AsyncClient(timeout=self.timeout)

    async def _attempt(
        self,
        url: str,
        method: str,
        headers: Optional[Dict[str, str]],
        body: Optional[Union[str, bytes]],
    ) -> httpx.Response:
        async with self._build_client(url) as client:
            return await client.request(
                method=method,
                url=url,
                headers=headers,
                content=body,
            )

    async def call(
        self,
        url: str,
        method: str = "GET",
        headers: Optional[Dict[str, str]] = None,
        body: Optional[Union[str, bytes]] = None,
        max_retries: int = 3,
        base_delay: float = 1.0,
    ) -> httpx.Response:
        """
        Issue a request with retry logic

        Args:
            url: Target URL
            method: HTTP method
            headers: Request headers
            body: Raw request body
            max_retries: Total number of attempts
            base_delay: Delay unit in seconds; attempt N waits N * base_delay

        Returns:
            The final attempt's response (which may be non-2xx)

        Raises:
            httpx.HTTPError: Transport error on the final attempt
            asyncio.TimeoutError: The final attempt ran past the timeout
        """
        attempts = max(1, max_retries)
        path = "proxy" if self.uses_proxy(url) else "direct"

        for attempt in range(1, attempts + 1):
            is_final = attempt == attempts
            try:
                # Absolute bound on the whole attempt, body read included
                response = await asyncio.wait_for(
                    self._attempt(url, method, headers, body),
                    timeout=self.timeout,
                )

                if response.is_success or is_final:
                    if not response.is_success:
                        logger.warning(
                            f"Request to {url} failed with status {response.status_code} "
                            f"after {attempts} attempts ({path})"
                        )
                    return response

                logger.warning(
                    f"Attempt {attempt}/{attempts} failed with status {response.status_code} "
                    f"({path}), retrying..."
                )

            except asyncio.TimeoutError:
                logger.warning(f"Attempt {attempt}/{attempts} timed out after {self.timeout}s ({path})")
                if is_final:
                    raise

            except httpx.HTTPError as e:
                logger.warning(f"Attempt {attempt}/{attempts} error ({path}): {e!r}")
                if is_final:
                    raise

            await asyncio.sleep(base_delay * attempt)

        # Unreachable: the final attempt always returns or raises
        raise RuntimeError("Request failed after retries")
