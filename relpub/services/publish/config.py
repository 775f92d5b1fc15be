from __future__ import annotations

# Build agents that must publish before a version can become "latest".
DEFAULT_PLATFORM_BADGES: tuple[str, ...] = (
    "Windows_x86",
    "Windows_x64",
    "Ubuntu_x64",
    "RHEL_x64",
    "OSX_x64",
    "Debian_x64",
    "CentOS_x64",
)
BADGE_SUFFIX = ".svg"

LATEST_TOKEN = "latest"

# OS/arch monikers that get a dnvm version descriptor.
DNVM_MONIKERS: tuple[str, ...] = (
    "win.x86",
    "win.x64",
    "ubuntu.x64",
    "rhel.x64",
    "osx.x64",
    "debian.x64",
    "centos.x64",
)

# Only the Ubuntu agent publishes Debian packages.
DEB_PUBLISHING_BADGE = "Ubuntu_x64"

DOCKER_HUB_BASE_URL = "https://registry.hub.docker.com/u/"
DOCKER_HUB_PAYLOAD: dict[str, object] = {"build": True}

DEB_PUBLISH_TIMEOUT_SECONDS = 5 * 60.0
DEB_REPO_ENV_VARS: tuple[str, ...] = ("REPO_ID", "REPO_USER", "REPO_PASS", "REPO_SERVER")

# Environment
ENV_PUBLISH_GATE = "PUBLISH_TO_BLOB"
ENV_CHANNEL = "RELPUB_CHANNEL"
ENV_CLI_VERSION = "RELPUB_CLI_VERSION"
ENV_SHAREDFX_VERSION = "RELPUB_SHAREDFX_VERSION"
ENV_COMMIT = "RELPUB_COMMIT"
ENV_PLATFORM = "RELPUB_PLATFORM"
ENV_STORAGE_ROOT = "RELPUB_STORAGE_ROOT"
ENV_CONFIG = "RELPUB_CONFIG"
ENV_DOCKER_HUB_REPO = "DOCKER_HUB_REPO"
ENV_DOCKER_HUB_TRIGGER_TOKEN = "DOCKER_HUB_TRIGGER_TOKEN"
