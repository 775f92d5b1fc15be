"""End-to-end tests for the relpub command line."""

from __future__ import annotations

from pathlib import Path

import pytest
from typer.testing import CliRunner

from relpub import __version__
from relpub.cli.app import app
from relpub.core.result import Ok
from relpub.services.publish.config import (
    DEFAULT_PLATFORM_BADGES,
    ENV_CHANNEL,
    ENV_CLI_VERSION,
    ENV_COMMIT,
    ENV_CONFIG,
    ENV_DOCKER_HUB_REPO,
    ENV_DOCKER_HUB_TRIGGER_TOKEN,
    ENV_PLATFORM,
    ENV_PUBLISH_GATE,
    ENV_SHAREDFX_VERSION,
    ENV_STORAGE_ROOT,
)
from relpub.storage.local import LocalBlobStore

CLI = "1.0.0-preview2-003121"
SFX = "1.0.0-rc2-3002702"

runner = CliRunner()


@pytest.fixture(autouse=True)
def _isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    # The root callback writes options into os.environ; register every key so
    # monkeypatch restores it after the test.
    for key in (
        ENV_CHANNEL,
        ENV_CLI_VERSION,
        ENV_COMMIT,
        ENV_CONFIG,
        ENV_PLATFORM,
        ENV_SHAREDFX_VERSION,
        ENV_STORAGE_ROOT,
        ENV_PUBLISH_GATE,
        ENV_DOCKER_HUB_REPO,
        ENV_DOCKER_HUB_TRIGGER_TOKEN,
    ):
        monkeypatch.setenv(key, "unset")
        monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)


def _root_args(tmp_path: Path, platform: str) -> list[str]:
    return [
        "--storage-root",
        str(tmp_path / "blobs"),
        "--cli-version",
        CLI,
        "--sharedfx-version",
        SFX,
        "--platform",
        platform,
        "--commit",
        "abc123",
    ]


def _agent_files(tmp_path: Path, platform: str) -> tuple[Path, Path]:
    work = tmp_path / platform
    work.mkdir()
    archive = work / f"dotnet-dev-{platform.lower()}.{CLI}.tar.gz"
    archive.write_bytes(platform.encode())
    badge = work / f"{platform}_badge.svg"
    badge.write_text("<svg/>", encoding="utf-8")
    return archive, badge


def test_version() -> None:
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_missing_cli_version_is_user_error(tmp_path: Path) -> None:
    result = runner.invoke(app, ["--sharedfx-version", SFX, "status"])
    assert result.exit_code == 1


def test_broken_config_is_env_error(tmp_path: Path) -> None:
    (tmp_path / "relpub.toml").write_text("[badges]\nplatforms = []\n", encoding="utf-8")
    result = runner.invoke(app, [*_root_args(tmp_path, "Ubuntu_x64"), "status"])
    assert result.exit_code == 2


def test_status_unregistered_platform(tmp_path: Path) -> None:
    result = runner.invoke(app, [*_root_args(tmp_path, "Fedora_x64"), "status"])
    assert result.exit_code == 2


def test_finalize_unregistered_platform(tmp_path: Path) -> None:
    result = runner.invoke(app, [*_root_args(tmp_path, "Fedora_x64"), "finalize"])
    assert result.exit_code == 2


def test_publish_run_requires_gate(tmp_path: Path) -> None:
    archive, badge = _agent_files(tmp_path, "Ubuntu_x64")
    result = runner.invoke(
        app,
        [*_root_args(tmp_path, "Ubuntu_x64"), "publish", "run", "--archive", str(archive), "--badge", str(badge)],
    )
    assert result.exit_code == 1
    assert LocalBlobStore(tmp_path / "blobs").list_blobs("") == []


def test_publish_artifacts_missing_file(tmp_path: Path) -> None:
    result = runner.invoke(
        app,
        [*_root_args(tmp_path, "Ubuntu_x64"), "publish", "artifacts", "--archive", str(tmp_path / "nope.tar.gz")],
    )
    assert result.exit_code == 5


def test_invalid_deb_option(tmp_path: Path) -> None:
    result = runner.invoke(
        app,
        [*_root_args(tmp_path, "Ubuntu_x64"), "publish", "artifacts", "--deb", "no-separator"],
    )
    assert result.exit_code == 1


def test_all_agents_publish_then_latest_is_promoted(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(ENV_PUBLISH_GATE, "1")
    store = LocalBlobStore(tmp_path / "blobs")

    for platform in DEFAULT_PLATFORM_BADGES:
        archive, badge = _agent_files(tmp_path, platform)
        result = runner.invoke(
            app,
            [*_root_args(tmp_path, platform), "publish", "run", "--archive", str(archive), "--badge", str(badge)],
        )
        assert result.exit_code == 0, result.output

    latest = store.list_blobs("master/Binaries/Latest/")
    assert f"master/Binaries/Latest/{CLI}" in latest
    for platform in DEFAULT_PLATFORM_BADGES:
        name = f"dotnet-dev-{platform.lower()}.latest.tar.gz"
        assert store.read_bytes(f"master/Binaries/Latest/{name}") == platform.encode()
    assert store.read_text("master/dnvm/latest.ubuntu.x64.version") == f"abc123\n{CLI}\n"

    rerun = runner.invoke(app, [*_root_args(tmp_path, "Ubuntu_x64"), "finalize"])
    assert rerun.exit_code == 0
    assert store.list_blobs("master/Binaries/Latest/") == latest


def test_finalize_dry_run_writes_nothing(tmp_path: Path) -> None:
    store = LocalBlobStore(tmp_path / "blobs")
    for platform in DEFAULT_PLATFORM_BADGES:
        store.write_text(f"master/Binaries/{CLI}/{platform}_badge.svg", "<svg/>")

    result = runner.invoke(app, [*_root_args(tmp_path, "OSX_x64"), "finalize", "--dry-run"])

    assert result.exit_code == 0
    assert store.list_blobs("master/Binaries/Latest/") == []
    assert not store.exists("master/Binaries/publishSemaphore")


def test_sharedfx_deb_registered_under_sharedfx_version(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    import relpub.cli.commands.publish_cmd as publish_cmd

    calls: list[tuple[str, str, str]] = []

    def fake_publish_package(self: object, package_name: str, version: str, upload_url: str) -> Ok[None]:
        calls.append((package_name, version, upload_url))
        return Ok(None)

    monkeypatch.setattr(publish_cmd.DebRepoPublisher, "publish_package", fake_publish_package)
    deb = tmp_path / "dotnet-sharedframework.deb"
    deb.write_bytes(b"!<arch>")

    result = runner.invoke(
        app,
        [
            *_root_args(tmp_path, "Ubuntu_x64"),
            "publish",
            "artifacts",
            "--sharedfx-deb",
            f"dotnet-sharedframework={deb}",
        ],
    )

    assert result.exit_code == 0, result.output
    assert calls == [
        (
            "dotnet-sharedframework",
            SFX,
            f"https://dotnetcli.blob.core.windows.net/dotnet/master/Installers/{SFX}/dotnet-sharedframework.deb",
        )
    ]
    assert LocalBlobStore(tmp_path / "blobs").exists(f"master/Installers/{SFX}/dotnet-sharedframework.deb")
