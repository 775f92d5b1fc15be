"""HTTP client abstraction for webhook calls.

This module provides:
- HttpClient: Protocol for HTTP operations (injectable for tests)
- RealHttpClient: Real implementation using urllib
- MockHttpClient: Mock implementation for testing
"""

from __future__ import annotations

import json
import ssl
import urllib.error
import urllib.request
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from relpub.core.result import Err, Ok, Result

__all__ = [
    "HttpClient",
    "HttpError",
    "HttpResponse",
    "MockHttpClient",
    "RealHttpClient",
]


@dataclass(frozen=True, slots=True)
class HttpResponse:
    status: int
    reason: str
    body: str


@dataclass(frozen=True, slots=True)
class HttpError:
    """HTTP error details.

    Attributes:
        url: The URL that failed
        status: HTTP status code (0 for network errors)
        message: Reason phrase or transport error message
        body: Response body, when the server sent one
    """

    url: str
    status: int
    message: str
    body: str = ""

    def __str__(self) -> str:
        if self.status:
            return f"HTTP {self.status}: {self.message} ({self.url})"
        return f"{self.message} ({self.url})"


@runtime_checkable
class HttpClient(Protocol):
    def post_json(self, url: str, payload: object) -> Result[HttpResponse, HttpError]:
        """POST payload as JSON.

        Returns:
            Ok with the response for 2xx statuses, otherwise Err with HttpError
        """
        ...


def _decode(data: bytes) -> str:
    return data.decode("utf-8", errors="replace")


class RealHttpClient:
    """HTTP client using urllib with system certificates."""

    def __init__(self, timeout: float = 30.0, user_agent: str = "relpub/0.3.0") -> None:
        self.timeout = timeout
        self.user_agent = user_agent
        self._ssl_context = ssl.create_default_context()

    def post_json(self, url: str, payload: object) -> Result[HttpResponse, HttpError]:
        data = json.dumps(payload).encode("utf-8")
        try:
            req = urllib.request.Request(
                url,
                data=data,
                method="POST",
                headers={
                    "User-Agent": self.user_agent,
                    "Content-Type": "application/json; charset=utf-8",
                },
            )
            with urllib.request.urlopen(
                req,
                timeout=self.timeout,
                context=self._ssl_context,
            ) as response:
                return Ok(
                    HttpResponse(
                        status=response.status,
                        reason=response.reason,
                        body=_decode(response.read()),
                    )
                )
        except urllib.error.HTTPError as e:
            body = _decode(e.read()) if e.fp is not None else ""
            return Err(HttpError(url=url, status=e.code, message=str(e.reason), body=body))
        except urllib.error.URLError as e:
            return Err(HttpError(url=url, status=0, message=str(e.reason)))
        except TimeoutError:
            return Err(HttpError(url=url, status=0, message="Request timed out"))
        except ValueError as e:
            return Err(HttpError(url=url, status=0, message=str(e)))
        except OSError as e:
            return Err(HttpError(url=url, status=0, message=str(e)))


class MockHttpClient:
    """Mock HTTP client for testing.

    Usage:
        client = MockHttpClient()
        client.set_post(url, HttpResponse(status=200, reason="OK", body=""))
        result = client.post_json(url, {"build": True})
    """

    def __init__(self) -> None:
        self._post_responses: dict[str, HttpResponse | HttpError] = {}
        self.calls: list[tuple[str, str, object]] = []

    def set_post(self, url: str, response: HttpResponse | HttpError) -> None:
        self._post_responses[url] = response

    def post_json(self, url: str, payload: object) -> Result[HttpResponse, HttpError]:
        self.calls.append(("post_json", url, payload))

        if url not in self._post_responses:
            return Err(HttpError(url=url, status=404, message="Not Found (mock)"))

        response = self._post_responses[url]
        if isinstance(response, HttpError):
            return Err(response)
        if not 200 <= response.status < 300:
            return Err(
                HttpError(url=url, status=response.status, message=response.reason, body=response.body)
            )
        return Ok(response)
