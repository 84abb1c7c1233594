"""
HTTP helpers shared by translators and the puller.

This is the single place where network failures are classified into
permanent and transient errors.
"""

from contextlib import contextmanager
from typing import Dict, Iterator, Optional
import logging

import requests

from .errors import PermanentError, TransientError, TranslationError

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "bibpull/0.3 (+https://github.com/hksorensen/dh4pmp_tools)"

# Status codes worth retrying
TRANSIENT_STATUS = {408, 425, 429, 500, 502, 503, 504}


def create_session(user_agent: Optional[str] = None) -> requests.Session:
    """Create a session with bibpull's default headers."""
    session = requests.Session()
    session.headers.update({
        "User-Agent": user_agent or DEFAULT_USER_AGENT,
        "Accept-Language": "en-US,en;q=0.5",
    })
    return session


def parse_retry_after(value: Optional[str]) -> Optional[float]:
    """Parse a Retry-After header given in seconds. HTTP dates are ignored."""
    if not value:
        return None
    try:
        seconds = float(value)
    except ValueError:
        return None
    return max(seconds, 0.0)


def raise_for_status(response: requests.Response, what: str) -> None:
    """Raise a classified error for a non-2xx response.

    Args:
        response: HTTP response
        what: Short description used in the error message (e.g. "DOI 10.1/x")

    Raises:
        TransientError: 408/425/429/5xx
        PermanentError: Any other non-success status
    """
    status = response.status_code
    if status < 400:
        return

    if status in TRANSIENT_STATUS or status >= 500:
        retry_after = parse_retry_after(response.headers.get("Retry-After"))
        if status == 429:
            raise TransientError(f"Rate limited fetching {what} (HTTP 429)", retry_after=retry_after)
        raise TransientError(f"HTTP {status} fetching {what}", retry_after=retry_after)

    if status in (404, 410):
        raise PermanentError(f"{what} not found (HTTP {status})")
    raise PermanentError(f"HTTP {status} fetching {what}")


@contextmanager
def classify_request_errors(what: str) -> Iterator[None]:
    """Translate `requests` exceptions raised in the block into TranslationErrors."""
    try:
        yield
    except TranslationError:
        raise
    except requests.Timeout as e:
        raise TransientError(f"Timeout fetching {what}") from e
    except requests.ConnectionError as e:
        raise TransientError(f"Connection error fetching {what}: {e}") from e
    except (requests.exceptions.InvalidURL, requests.exceptions.MissingSchema,
            requests.exceptions.InvalidSchema) as e:
        raise PermanentError(f"Invalid URL for {what}: {e}") from e
    except requests.RequestException as e:
        raise TransientError(f"Request failed for {what}: {e}") from e


def get(
    session: requests.Session,
    url: str,
    what: str,
    timeout: float = 30,
    headers: Optional[Dict[str, str]] = None,
    params: Optional[Dict[str, str]] = None,
    stream: bool = False,
) -> requests.Response:
    """GET a URL, raising classified errors on failure.

    Returns:
        Successful response
    """
    with classify_request_errors(what):
        response = session.get(url, headers=headers, params=params, timeout=timeout,
                               allow_redirects=True, stream=stream)
    logger.debug(f"GET {url} -> {response.status_code}")
    raise_for_status(response, what)
    return response
