from __future__ import annotations

import re
from urllib.parse import urljoin, urlsplit

from relpub.core.result import Err, Ok, Result
from relpub.net.http import HttpClient
from relpub.output.console import ConsoleProtocol
from relpub.services.publish.config import DOCKER_HUB_BASE_URL, DOCKER_HUB_PAYLOAD
from relpub.services.publish.errors import PublishError

_REPO_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*/[A-Za-z0-9][A-Za-z0-9._-]*$")
_TOKEN_RE = re.compile(r"^[A-Za-z0-9_-]+$")

_INVALID = "Invalid DOCKER_HUB_REPO and/or DOCKER_HUB_TRIGGER_TOKEN"


def trigger_url(repo: str | None, token: str | None) -> Result[str, PublishError]:
    """Build the Docker Hub trigger URL without contacting the network."""
    repo = (repo or "").strip()
    token = (token or "").strip()
    if not _REPO_RE.match(repo) or not _TOKEN_RE.match(token):
        return Err(
            PublishError(
                kind="network_failure",
                message=_INVALID,
                hint="expected DOCKER_HUB_REPO=owner/name and an alphanumeric trigger token",
            )
        )

    url = urljoin(DOCKER_HUB_BASE_URL, f"{repo}/trigger/{token}/")
    if urlsplit(url).netloc != urlsplit(DOCKER_HUB_BASE_URL).netloc:
        return Err(PublishError(kind="network_failure", message=_INVALID))
    return Ok(url)


def redact(url: str, token: str) -> str:
    """Hide the trigger token in a trigger URL."""
    token = token.strip()
    if not token:
        return url
    return url.replace(f"/trigger/{token}/", "/trigger/***/")


def trigger_docker_hub_builds(
    *,
    repo: str | None,
    token: str | None,
    http: HttpClient,
    console: ConsoleProtocol,
) -> Result[None, PublishError]:
    url_r = trigger_url(repo, token)
    if isinstance(url_r, Err):
        return url_r
    url = url_r.value
    shown = redact(url, token or "")

    console.info(f"triggering automated Docker Hub builds for {(repo or '').strip()}")
    result = http.post_json(url, DOCKER_HUB_PAYLOAD)
    if isinstance(result, Err):
        e = result.error
        if e.status:
            message = (
                f"HTTP request to {shown} was unsuccessful.\n"
                f"Response status code: {e.status}. Reason phrase: {e.message}.\n"
                f"Response content: {e.body}"
            )
        else:
            message = f"HTTP request to {shown} failed. {e.message}"
        return Err(PublishError(kind="network_failure", message=message))

    return Ok(None)
