"""Debian repository publishing.

The repository is driven through its command line client: we write an upload
descriptor pointing at the already uploaded ``.deb`` and run
``<client> -addpkg <descriptor>`` with the repository credentials in the
environment.
"""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Protocol

from relpub.core.result import Err, Ok, Result
from relpub.output.console import ConsoleProtocol, Style
from relpub.platform.files import atomic_write_text
from relpub.platform.process import run as run_process
from relpub.services.publish.config import DEB_PUBLISH_TIMEOUT_SECONDS, DEB_REPO_ENV_VARS
from relpub.services.publish.errors import PublishError


class PackageRepository(Protocol):
    def publish_package(
        self, package_name: str, version: str, upload_url: str
    ) -> Result[None, PublishError]: ...


class DebRepoPublisher:
    def __init__(
        self,
        *,
        client: Sequence[str],
        work_dir: Path,
        env: Mapping[str, str],
        console: ConsoleProtocol,
    ) -> None:
        self._client = list(client)
        self._work_dir = work_dir
        self._env = env
        self._console = console

    def upload_descriptor(self, package_name: str, version: str, upload_url: str) -> Path:
        path = self._work_dir / f"package_upload_{package_name}_{version}.json"
        payload = {
            "name": package_name,
            "version": version,
            "repositoryId": self._env.get("REPO_ID", ""),
            "sourceUrl": upload_url,
        }
        atomic_write_text(path, json.dumps(payload, indent=2) + "\n")
        return path

    def publish_package(
        self, package_name: str, version: str, upload_url: str
    ) -> Result[None, PublishError]:
        missing = [k for k in DEB_REPO_ENV_VARS if not self._env.get(k)]
        if missing:
            return Err(
                PublishError(
                    kind="package_publish_failed",
                    message=f"cannot publish {package_name}: missing {', '.join(missing)}",
                    hint="set the Debian repository credentials in the environment",
                )
            )

        descriptor = self.upload_descriptor(package_name, version, upload_url)
        cmd = [*self._client, "-addpkg", str(descriptor)]
        self._console.print(f"publishing {package_name} {version} to the Debian repository", Style.DIM)
        result = run_process(
            cmd,
            cwd=self._work_dir,
            extra_env={k: self._env[k] for k in DEB_REPO_ENV_VARS},
            timeout=DEB_PUBLISH_TIMEOUT_SECONDS,
        )
        if isinstance(result, Err):
            e = result.error
            return Err(
                PublishError(
                    kind="package_publish_failed",
                    message=f"{package_name} {version}: {e}",
                    hint=e.stderr.strip() or None,
                )
            )
        return Ok(None)
