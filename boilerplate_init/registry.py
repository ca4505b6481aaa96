"""
registry.py

Responsibility: isolate all npm registry interaction.

This module must be the only place that:
- Picks the registry base URL
- Sends HTTP requests to the registry (package metadata, tarball download)
- Interprets registry responses and unpacks downloaded archives

Everything else (rendering, prompting, CLI behavior) should use these helpers.
"""

from __future__ import annotations

import json
import os
import re
import shutil
import tarfile
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import requests

from boilerplate_init.config import Settings
from boilerplate_init.logger import Logger

PUBLIC_REGISTRY = "https://registry.npmjs.org"

REGISTRY_ALIASES = {
    "china": "https://registry.npm.taobao.org",
    "npm": PUBLIC_REGISTRY,
    "netease": "http://rnpm.hz.netease.com",
}

# When either file exists the host belongs to a private mirror setup; use the public registry.
MIRROR_RC_FILES = (".cnpmrc", ".tnpmrc")


class RegistryError(RuntimeError):
    pass


class DownloadError(RuntimeError):
    pass


@dataclass(frozen=True)
class PackageMetadata:
    name: str
    dist_tarball_url: str | None = None
    config: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> PackageMetadata:
        dist = data.get("dist") or {}
        return cls(
            name=str(data.get("name") or ""),
            dist_tarball_url=dist.get("tarball"),
            config=dict(data.get("config") or {}),
        )


def get_registry_by_type(
    key: str | None,
    *,
    env: Mapping[str, str] | None = None,
    home: Path | None = None,
) -> str:
    """
    Resolve a registry short name (`china`, `npm`, `netease`) or URL to a base URL
    without trailing slash. Anything else is auto-detected from the environment.
    """
    if key in REGISTRY_ALIASES:
        return REGISTRY_ALIASES[key]
    if key and re.match(r"^https?:", key):
        return key.rstrip("/")

    env = os.environ if env is None else env
    home = Path.home() if home is None else home
    url = env.get("npm_registry") or env.get("npm_config_registry") or PUBLIC_REGISTRY
    if any((home / name).exists() for name in MIRROR_RC_FILES):
        url = PUBLIC_REGISTRY
    return url.rstrip("/")


class RegistryClient:
    def __init__(self, registry_url: str, session: requests.Session | None = None) -> None:
        self._registry_url = registry_url.rstrip("/")
        self._session = session or requests.Session()

    @property
    def registry_url(self) -> str:
        return self._registry_url

    def fetch_json(self, url: str, *, timeout: float, max_redirects: int) -> Any:
        self._session.max_redirects = max_redirects
        try:
            r = self._session.get(url, timeout=timeout, allow_redirects=True)
        except requests.RequestException as e:
            raise RegistryError(f"GET {url} failed: {e}") from e
        if r.status_code != 200:
            try:
                payload = r.json()
            except ValueError:
                payload = {"reason": r.text}
            reason = payload.get("reason") or payload.get("error") if isinstance(payload, dict) else payload
            raise RegistryError(f"GET {url} got error: {r.status_code}, {reason}")
        try:
            return r.json()
        except ValueError as e:
            raise RegistryError(f"GET {url} returned invalid JSON") from e

    def fetch_stream(self, url: str, *, timeout: float) -> requests.Response:
        try:
            r = self._session.get(url, stream=True, timeout=timeout, allow_redirects=True)
            r.raise_for_status()
        except requests.RequestException as e:
            raise DownloadError(f"Download {url} failed: {e}") from e
        return r

    def latest_url(self, pkg_name: str) -> str:
        return f"{self._registry_url}/{pkg_name}/latest"


def find_local_manifest(pkg_name: str, start: Path) -> Path | None:
    """
    Look for `node_modules/<pkg_name>/package.json` in start and its parents.
    """
    for base in (start, *start.parents):
        candidate = base / "node_modules" / pkg_name / "package.json"
        if candidate.is_file():
            return candidate
    return None


def get_package_info(
    client: RegistryClient,
    pkg_name: str,
    *,
    settings: Settings,
    logger: Logger,
    with_fallback: bool = False,
    cwd: Path | None = None,
) -> PackageMetadata:
    """
    Fetch `<registry>/<pkg_name>/latest`.

    With `with_fallback`, a failed lookup falls back to a locally installed copy
    of the package; the lookup error is re-raised when there is none.
    """
    logger.log(f"fetching npm info of {pkg_name}")
    try:
        data = client.fetch_json(
            client.latest_url(pkg_name),
            timeout=settings.metadata_timeout,
            max_redirects=settings.max_redirects,
        )
        return PackageMetadata.from_json(data)
    except RegistryError:
        if not with_fallback:
            raise
        manifest = find_local_manifest(pkg_name, (cwd or Path.cwd()).resolve())
        if manifest is None:
            raise
        logger.log(f"use fallback from {pkg_name}")
        return PackageMetadata.from_json(json.loads(manifest.read_text(encoding="utf-8")))


def extract_tgz(fileobj: Any, destination: Path) -> None:
    destination.mkdir(parents=True, exist_ok=True)
    try:
        with tarfile.open(fileobj=fileobj, mode="r|gz") as tar:
            if hasattr(tarfile, "data_filter"):
                tar.extractall(destination, filter="data")
            else:
                tar.extractall(destination)
    except (tarfile.TarError, OSError) as e:
        raise DownloadError(f"Failed to extract archive into {destination}: {e}") from e


def download_boilerplate(
    client: RegistryClient,
    pkg_name: str,
    *,
    settings: Settings,
    logger: Logger,
    tmp_root: Path | None = None,
) -> Path:
    """
    Download and unpack the latest tarball of pkg_name; return its `package/` folder.
    """
    info = get_package_info(client, pkg_name, settings=settings, logger=logger)
    if not info.dist_tarball_url:
        raise DownloadError(f"{pkg_name} has no dist.tarball in its metadata")

    logger.log(f"downloading {info.dist_tarball_url}")
    save_dir = Path(tmp_root or tempfile.gettempdir()) / settings.config_name / pkg_name
    shutil.rmtree(save_dir, ignore_errors=True)

    response = client.fetch_stream(info.dist_tarball_url, timeout=settings.download_timeout)
    with response:
        extract_tgz(response.raw, save_dir)

    logger.log(f"extract to {save_dir}")
    return save_dir / "package"
