"""
HTTP Utility module for standardized API requests.
Handles retries, timeouts and maps failures onto the provider error taxonomy.
"""

import time
import requests
from typing import Optional, Dict, Any, Union
from data_acquisition.providers.errors import (
    KeyRejected, MalformedResponse, NoDataForSymbol, ProviderTimeout, ProviderUnavailable, RateLimited
)
from utils.logger import setup_logger

logger = setup_logger('http_utils')

# Transient server-side failures worth another attempt
RETRYABLE_STATUS = (500, 502, 503, 504)


def _raise_for_status(response: requests.Response, source_name: str, url: str) -> None:
    status = response.status_code
    if status == 429:
        # Retrying would only burn more quota
        raise RateLimited(f"{source_name} HTTP 429 Too Many Requests")
    if status in (401, 403):
        raise KeyRejected(f"{source_name} {status}: key rejected or plan does not cover this endpoint")
    if status == 402:
        raise ProviderUnavailable(f"{source_name} 402 Payment/Plan Required")
    if status == 404:
        raise NoDataForSymbol(f"{source_name} 404 Not Found: {url}")
    if status >= 400:
        raise ProviderUnavailable(f"{source_name} HTTP {status}: {response.text[:200]}")


def _send(method, url, source_name, retries, retry_delay, **kwargs) -> Union[Dict, list]:
    attempt = 0
    last_error = "no attempt made"
    timed_out = False
    while attempt <= retries:
        try:
            response = method(url, **kwargs)
            if response.status_code in RETRYABLE_STATUS:
                last_error = f"HTTP {response.status_code}"
                timed_out = False
                logger.warning(f"{source_name} {last_error}. Retrying ({attempt+1}/{retries})...")
            else:
                _raise_for_status(response, source_name, url)
                try:
                    return response.json()
                except ValueError as e:
                    raise MalformedResponse(f"{source_name} returned non-JSON body: {e}") from e

        except requests.exceptions.RequestException as e:
            last_error = str(e)
            timed_out = isinstance(e, requests.exceptions.Timeout)
            logger.warning(f"{source_name} connection error: {e}. Retrying ({attempt+1}/{retries})...")

        attempt += 1
        if attempt <= retries:
            time.sleep(retry_delay * (2 ** (attempt - 1)))

    if timed_out:
        raise ProviderTimeout(f"{source_name} timed out after {retries} retries: {last_error}")
    raise ProviderUnavailable(f"{source_name} request failed after {retries} retries: {last_error}")


def make_request(
    url: str,
    params: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
    timeout: int = 10,
    retries: int = 3,
    retry_delay: float = 1.0,
    source_name: str = "API"
) -> Union[Dict, list]:
    """
    Make an HTTP GET request with retries and error handling.

    Args:
        url: The full URL to request.
        params: Query parameters dictionary.
        headers: Request headers dictionary.
        timeout: Request timeout in seconds.
        retries: Number of retry attempts for transient errors.
        retry_delay: Delay in seconds between retries (exponential backoff applied).
        source_name: Name of the data source for logging.

    Returns:
        Parsed JSON body.

    Raises:
        RateLimited: HTTP 429.
        NoDataForSymbol: HTTP 404.
        KeyRejected: HTTP 401/403.
        ProviderTimeout: Every attempt timed out.
        MalformedResponse: Body is not JSON.
        ProviderUnavailable: Any other HTTP or connection failure.
    """
    return _send(
        requests.get, url, source_name, retries, retry_delay,
        params=params, headers=headers, timeout=timeout
    )


def post_json(
    url: str,
    payload: Dict[str, Any],
    headers: Optional[Dict[str, str]] = None,
    timeout: int = 30,
    retries: int = 1,
    retry_delay: float = 2.0,
    source_name: str = "API"
) -> Union[Dict, list]:
    """POST a JSON body; same retry and error mapping as ``make_request``."""
    return _send(
        requests.post, url, source_name, retries, retry_delay,
        json=payload, headers=headers, timeout=timeout
    )
