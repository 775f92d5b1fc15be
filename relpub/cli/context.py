from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

import typer

from relpub.core.config import CONFIG_FILE_NAME, Config, load_config_or_default
from relpub.core.errors import ErrorCode
from relpub.core.result import Err
from relpub.output.console import ConsoleProtocol, RichConsole
from relpub.platform.detection import PlatformInfo, detect
from relpub.services.publish.badges import BadgeRegistry
from relpub.services.publish.config import (
    ENV_CHANNEL,
    ENV_CLI_VERSION,
    ENV_COMMIT,
    ENV_CONFIG,
    ENV_PLATFORM,
    ENV_SHAREDFX_VERSION,
    ENV_STORAGE_ROOT,
)
from relpub.services.publish.lease import LeasePolicy
from relpub.services.publish.model import PublishContext
from relpub.storage.base import BlobStore
from relpub.storage.local import LocalBlobStore


@dataclass(frozen=True, slots=True)
class CLIContext:
    config: Config
    publish: PublishContext
    store: BlobStore
    registry: BadgeRegistry
    policy: LeasePolicy
    platform: PlatformInfo
    console: ConsoleProtocol
    env: Mapping[str, str]


def _fail(message: str, code: ErrorCode) -> typer.Exit:
    typer.echo(f"error: {message}", err=True)
    return typer.Exit(code=int(code))


def _required(env: Mapping[str, str], key: str, flag: str) -> str:
    value = (env.get(key) or "").strip()
    if not value:
        raise _fail(f"missing {flag} (or {key})", ErrorCode.USER_ERROR)
    return value


def build_context() -> CLIContext:
    env = dict(os.environ)

    config_path = Path(env.get(ENV_CONFIG) or CONFIG_FILE_NAME)
    config_result = load_config_or_default(config_path)
    if isinstance(config_result, Err):
        raise _fail(config_result.error.message, ErrorCode.ENV_ERROR)
    config = config_result.value

    platform = detect()
    publish = PublishContext(
        channel=(env.get(ENV_CHANNEL) or "").strip() or config.publish.channel,
        cli_version=_required(env, ENV_CLI_VERSION, "--cli-version"),
        sharedfx_version=_required(env, ENV_SHAREDFX_VERSION, "--sharedfx-version"),
        badge=(env.get(ENV_PLATFORM) or "").strip() or platform.badge_name,
        commit_hash=(env.get(ENV_COMMIT) or "").strip(),
    )

    storage_root = (env.get(ENV_STORAGE_ROOT) or "").strip() or config.publish.storage_root

    return CLIContext(
        config=config,
        publish=publish,
        store=LocalBlobStore(Path(storage_root).expanduser()),
        registry=BadgeRegistry.from_platforms(config.badges),
        policy=LeasePolicy.from_config(config.lease),
        platform=platform,
        console=RichConsole(),
        env=env,
    )
