"""
REST Request Pipeline

Turns a RequestDescriptor into a Result. The pipeline is stateless: one
instance can serve any number of concurrent calls.

Response Classification (first match wins):
    1. Transport failure (refused, timeout, DNS)      -> Err(TransportError)
    2. Non-200 status, body {"error": {"error_code"}}  -> Err(HttpStatusError)
       Non-200 status, anything else                  -> Err(MalformedResponseError), logged
    3. 200 status, body not JSON                       -> Err(DecodeError)
    4. 200 status, JSON body                           -> Ok(envelope or envelope.result[key])

Usage:
    async with aiohttp.ClientSession() as session:
        pipeline = RequestPipeline(AiohttpTransport(session), settings)
        result = await pipeline.execute(RequestDescriptor(path="/v1/system/time"), "time")
"""

import asyncio
import json
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import aiohttp

from cobinhood.core.config import Settings
from cobinhood.core.errors import (
    DecodeError,
    HttpStatusError,
    MalformedResponseError,
    TransportError,
)
from cobinhood.core.logging import get_logger, log_api_request, log_api_response
from cobinhood.core.result import Err, Ok, Result
from cobinhood.core.schemas import RequestDescriptor
from cobinhood.core.utils.time import make_nonce

SUCCESS_STATUS = 200


# ============================================
# Transport
# ============================================

@dataclass(frozen=True)
class TransportResponse:
    """Raw HTTP response as produced by a transport."""

    status: int
    body: str
    headers: Dict[str, str] = field(default_factory=dict)


class AiohttpTransport:
    """
    Performs a single HTTP request over an aiohttp ClientSession.

    Raises aiohttp.ClientError / asyncio.TimeoutError on network failures;
    classification is left to the pipeline.
    """

    def __init__(self, session: aiohttp.ClientSession, timeout: float = 30):
        self.session = session
        self.timeout = aiohttp.ClientTimeout(total=timeout)

    async def request(
        self,
        method: str,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        body: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None
    ) -> TransportResponse:
        async with self.session.request(
            method,
            url,
            params=params or None,
            json=body,
            headers=headers,
            timeout=self.timeout
        ) as resp:
            text = await resp.text()
            return TransportResponse(status=resp.status, body=text, headers=dict(resp.headers))


# ============================================
# Pipeline
# ============================================

class RequestPipeline:
    """
    Normalizes REST responses into Ok/Err results.

    Attributes:
        transport: Object with an async request(method, url, params, body, headers)
        settings: Client settings (base URL, default headers)
    """

    def __init__(self, transport, settings: Settings):
        self.transport = transport
        self.settings = settings
        self.logger = get_logger(__name__)

    def build_headers(self, descriptor: RequestDescriptor) -> Dict[str, str]:
        headers = self.settings.rest_headers()
        headers.update(descriptor.headers)
        return headers

    async def execute(self, descriptor: RequestDescriptor, result_key: Optional[str] = None) -> Result:
        """
        Perform one request and classify the outcome.

        Args:
            descriptor: What to send
            result_key: Field to extract from the envelope's `result` object

        Returns:
            Ok with the narrowed value (or whole envelope), or Err
        """
        url = f"{self.settings.base_url}{descriptor.path}"
        headers = self.build_headers(descriptor)

        log_api_request(descriptor.method, descriptor.path, descriptor.query)
        started = time.monotonic()

        try:
            response = await self.transport.request(
                descriptor.method,
                url,
                params=descriptor.query,
                body=descriptor.body,
                headers=headers
            )
        except asyncio.TimeoutError as e:
            self.logger.error(f"Timeout on {descriptor.method} {descriptor.path}")
            return Err(TransportError(f"Request to {descriptor.path} timed out", cause=e))
        except (aiohttp.ClientError, OSError) as e:
            self.logger.error(f"Request failed on {descriptor.method} {descriptor.path}: {e}")
            return Err(TransportError(f"Request to {descriptor.path} failed: {e}", cause=e))

        log_api_response(descriptor.method, descriptor.path, response.status, time.monotonic() - started)

        if response.status != SUCCESS_STATUS:
            return Err(self._classify_failure(descriptor, response))

        try:
            envelope = json.loads(response.body)
        except ValueError as e:
            self.logger.error(f"Undecodable body on {descriptor.path}: {response.body[:100]}")
            return Err(DecodeError(response.body, cause=e))

        if not isinstance(envelope, (dict, list)):
            self.logger.error(f"Unstructured body on {descriptor.path}: {response.body[:100]}")
            return Err(DecodeError(response.body))

        return Ok(self._narrow(envelope, result_key))

    def _classify_failure(self, descriptor: RequestDescriptor, response: TransportResponse):
        try:
            code = json.loads(response.body)["error"]["error_code"]
        except (ValueError, KeyError, TypeError) as e:
            self.logger.error(
                f"Malformed error response on {descriptor.method} {descriptor.path}: "
                f"HTTP {response.status} body={response.body!r}"
            )
            return MalformedResponseError(response.status, response.body, cause=e)

        self.logger.warning(f"HTTP {response.status} on {descriptor.path}: {code}")
        return HttpStatusError(code, response.status)

    @staticmethod
    def _narrow(envelope: Any, result_key: Optional[str]) -> Any:
        if result_key and isinstance(envelope, dict):
            result = envelope.get("result")
            if isinstance(result, dict) and result_key in result:
                return result[result_key]
        return envelope


class AuthenticatedRequestPipeline(RequestPipeline):
    """
    Pipeline for trading and wallet endpoints.

    Adds the `authorization` header to every request and a millisecond
    `nonce` header to mutating (POST/PUT/DELETE) requests.
    """

    def __init__(self, transport, settings: Settings, api_key: Optional[str] = None):
        super().__init__(transport, settings)
        self.api_key = api_key if api_key is not None else settings.api_key

    def build_headers(self, descriptor: RequestDescriptor) -> Dict[str, str]:
        headers = super().build_headers(descriptor)
        headers["authorization"] = self.api_key
        if descriptor.is_mutating:
            headers["nonce"] = make_nonce()
        return headers
