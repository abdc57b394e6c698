"""
HTTP step handlers (apiCall, webhook) and the request helper shared by
the service integrations.
"""

from typing import Any, Dict, Optional
import base64
import json
import logging

import httpx

from stepflow.engine.handlers import handles
from stepflow.exceptions import TransportFailure
from stepflow.utils.retry import RetryConfig, retry_async

logger = logging.getLogger(__name__)


async def send_request(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    service: str = "HTTP",
    timeout_ms: Optional[int] = None,
    **kwargs: Any,
) -> httpx.Response:
    """
    Send a request and translate failures into TransportFailure.

    Raises:
        TransportFailure: On connection errors, timeouts and 4xx/5xx responses
    """
    if timeout_ms is not None:
        kwargs["timeout"] = timeout_ms / 1000
    logger.debug(f"{service} request: {method} {url}")
    try:
        response = await client.request(method, url, **kwargs)
    except httpx.TimeoutException as e:
        raise TransportFailure(f"{service} request timed out: {method} {url}") from e
    except httpx.RequestError as e:
        raise TransportFailure(f"{service} request failed: {e}") from e

    if response.is_error:
        raise TransportFailure(
            f"{service} returned {response.status_code} for {method} {url}",
            status_code=response.status_code,
            body=response.text,
        )
    return response


def decode_body(response: httpx.Response) -> Any:
    """JSON body when there is one, text otherwise."""
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


def _body_kwargs(body: Optional[str]) -> Dict[str, Any]:
    if body is None or body == "":
        return {}
    try:
        return {"json": json.loads(body)}
    except ValueError:
        return {"content": body}


@handles("apiCall")
async def api_call(executor, step, ctx) -> Any:
    """Call an HTTP API; the decoded response body is the step's value."""
    kwargs = _body_kwargs(step.body) if step.method != "GET" else {}
    response = await send_request(
        executor.http_client,
        step.method,
        step.url,
        service="API",
        timeout_ms=step.timeout_ms,
        headers=step.headers or None,
        **kwargs,
    )
    return decode_body(response)


def _auth_headers(auth) -> Dict[str, str]:
    if auth is None or auth.type == "none":
        return {}
    if auth.type == "basic":
        raw = f"{auth.username}:{auth.password}".encode("utf-8")
        return {"Authorization": f"Basic {base64.b64encode(raw).decode('ascii')}"}
    if auth.type == "bearer":
        return {"Authorization": f"Bearer {auth.token}"}
    return {auth.api_key_header or "X-API-Key": auth.api_key}


@handles("webhook")
async def webhook(executor, step, ctx) -> Dict[str, Any]:
    """
    Deliver a webhook, retrying with a fixed delay per the step's policy.

    Returns:
        ``{"status": <code>, "data": <decoded body>}``
    """
    headers = {"Content-Type": "application/json"}
    headers.update(step.headers)
    headers.update(_auth_headers(step.authentication))

    policy = step.retry_policy
    config = RetryConfig(
        max_attempts=(policy.max_retries if policy else 0) + 1,
        initial_delay_ms=policy.retry_delay if policy else 1000,
        backoff_multiplier=1.0,
        retry_on=(TransportFailure,),
    )

    response = await retry_async(
        send_request,
        config,
        executor.http_client,
        step.method,
        step.url,
        service="Webhook",
        timeout_ms=step.timeout_ms,
        headers=headers,
        **_body_kwargs(step.body),
    )
    return {"status": response.status_code, "data": decode_body(response)}
