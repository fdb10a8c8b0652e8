import asyncio
from asyncio.subprocess import PIPE as SUBPROCESS_PIPE
from typing import Dict, List, Optional
from urllib.parse import urlsplit

import httpx
from loguru import logger

from .base_scraper import (
    FetchStrategy,
    ResolutionError,
    TransportError,
    truncate_body,
)

DNS_RECORD_TYPE_A = 1
STATUS_MARKER = "\n__HTTP_STATUS__:"


class DohResolver:
    """Resolves hostnames to IPv4 addresses through a DNS-over-HTTPS JSON API."""

    def __init__(
        self,
        endpoint: str = "https://cloudflare-dns.com/dns-query",
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
    ):
        self.endpoint = endpoint
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout))

    async def _query(self, hostname: str) -> Dict:
        response = await self.client.get(
            self.endpoint,
            params={"name": hostname, "type": "A"},
            headers={"Accept": "application/dns-json"},
        )
        response.raise_for_status()
        return response.json()

    async def resolve(self, hostname: str) -> str:
        try:
            answer = await self._query(hostname)
        except (httpx.HTTPError, ValueError) as e:
            raise ResolutionError(
                f"DoH lookup for {hostname} failed: {e!r}", code="DOH_" + type(e).__name__
            ) from e
        if not isinstance(answer, dict):
            raise ResolutionError(
                f"DoH answer for {hostname} is not an object: {type(answer).__name__}",
                code="DOH_ANSWER",
            )

        records = answer.get("Answer")
        addresses: List[str] = [
            record.get("data")
            for record in (records if isinstance(records, list) else [])
            if isinstance(record, dict)
            and record.get("type") == DNS_RECORD_TYPE_A
            and record.get("data")
        ]
        if not addresses:
            raise ResolutionError(
                f"No A record for {hostname} (DoH status {answer.get('Status')})"
            )
        logger.debug(f"DoH resolved {hostname} -> {addresses[0]}")
        return addresses[0]

    async def close(self) -> None:
        if self._owns_client:
            await self.client.aclose()


def build_curl_command(
    url: str,
    headers: Dict[str, str],
    address: str,
    curl_binary: str = "curl",
    timeout: float = 30.0,
) -> List[str]:
    """Builds a curl invocation that connects to ``address`` but keeps the
    original hostname for SNI and the Host header."""
    parts = urlsplit(url)
    port = parts.port or (443 if parts.scheme == "https" else 80)
    cmd = [
        curl_binary,
        "--silent",
        "--show-error",
        "--http1.1",
        "--max-time",
        str(int(timeout)),
        "--resolve",
        f"{parts.hostname}:{port}:{address}",
        "--write-out",
        STATUS_MARKER + "%{http_code}",
    ]
    for key, value in headers.items():
        cmd.extend(["-H", f"{key}: {value}"])
    cmd.append(url)
    return cmd


class DohCurlStrategy(FetchStrategy):
    """Re-resolves the host via DoH, then fetches with curl pinned to that IP."""

    name = "doh+curl"

    def __init__(
        self,
        resolver: DohResolver,
        curl_binary: str = "curl",
        timeout: float = 30.0,
    ):
        self.resolver = resolver
        self.curl_binary = curl_binary
        self.timeout = timeout

    async def fetch_text(self, url: str, headers: Dict[str, str]) -> str:
        hostname = urlsplit(url).hostname
        if not hostname:
            raise TransportError(f"URL has no hostname: {url}", code="BAD_URL")
        address = await self.resolver.resolve(hostname)

        cmd = build_curl_command(url, headers, address, self.curl_binary, self.timeout)
        logger.debug(f"Running fallback fetch: {' '.join(cmd[:-1])} <url>")
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=SUBPROCESS_PIPE,
                stderr=SUBPROCESS_PIPE,
            )
        except FileNotFoundError as e:
            raise TransportError(
                f"curl executable '{self.curl_binary}' not found", code="CURL_MISSING"
            ) from e

        try:
            stdout, stderr = await asyncio.wait_for(
                proc.communicate(), timeout=self.timeout + 5
            )
        except asyncio.TimeoutError as e:
            proc.kill()
            await proc.wait()
            raise TransportError(
                f"curl did not finish within {self.timeout}s", code="CURL_TIMEOUT"
            ) from e

        if proc.returncode != 0:
            message = stderr.decode("utf-8", "replace").strip()
            raise TransportError(
                f"curl exited with {proc.returncode}: {message}",
                code=f"CURL_{proc.returncode}",
            )

        output = stdout.decode("utf-8", "replace")
        body, _, status_text = output.rpartition(STATUS_MARKER)
        try:
            status = int(status_text.strip())
        except ValueError:
            raise TransportError(
                f"curl output had no status trailer: {truncate_body(output)}",
                code="CURL_OUTPUT",
            ) from None
        if not 200 <= status < 300:
            raise TransportError(
                f"HTTP {status}: {truncate_body(body)}",
                code=f"HTTP_{status}",
                body=truncate_body(body),
            )
        return body

    async def close(self) -> None:
        await self.resolver.close()
