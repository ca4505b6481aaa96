"""Unit tests for boilerplate_init.registry.

Tests cover:
- get_registry_by_type (aliases, literal URLs, environment detection)
- RegistryClient.fetch_json / fetch_stream error mapping
- get_package_info (success, fallback to node_modules, propagation)
- download_boilerplate (purge, extract, package folder)
"""

from __future__ import annotations

import io
import json
import tarfile
from pathlib import Path
from unittest.mock import MagicMock

import pytest
import requests

from boilerplate_init.config import Settings
from boilerplate_init.registry import (
    PUBLIC_REGISTRY,
    DownloadError,
    PackageMetadata,
    RegistryClient,
    RegistryError,
    download_boilerplate,
    get_package_info,
    get_registry_by_type,
)
from tests.conftest import console_output


def _response(status: int = 200, data: object = None, raw: object = None) -> MagicMock:
    r = MagicMock(spec=requests.Response)
    r.status_code = status
    r.json.return_value = data
    r.text = json.dumps(data)
    r.raw = raw
    r.__enter__.return_value = r
    r.__exit__.return_value = None
    if status >= 400:
        r.raise_for_status.side_effect = requests.HTTPError(f"{status} error")
    return r


def _tgz(files: dict[str, bytes]) -> io.BytesIO:
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w:gz") as tar:
        for name, content in files.items():
            info = tarfile.TarInfo(name)
            info.size = len(content)
            tar.addfile(info, io.BytesIO(content))
    buf.seek(0)
    return buf


def _client(*responses: MagicMock) -> tuple[RegistryClient, MagicMock]:
    session = MagicMock(spec=requests.Session)
    session.get.side_effect = list(responses)
    return RegistryClient("https://registry.example.com/", session=session), session


# ---------------------------------------------------------------------------
# get_registry_by_type
# ---------------------------------------------------------------------------


class TestGetRegistryByType:
    def test_aliases(self, tmp_path: Path):
        assert get_registry_by_type("china", env={}, home=tmp_path) == "https://registry.npm.taobao.org"
        assert get_registry_by_type("npm", env={}, home=tmp_path) == "https://registry.npmjs.org"
        assert get_registry_by_type("netease", env={}, home=tmp_path) == "http://rnpm.hz.netease.com"

    def test_literal_url_strips_trailing_slash(self, tmp_path: Path):
        assert get_registry_by_type("https://example.com/", env={}, home=tmp_path) == "https://example.com"
        assert get_registry_by_type("http://example.com", env={}, home=tmp_path) == "http://example.com"

    def test_defaults_to_public_registry(self, tmp_path: Path):
        assert get_registry_by_type(None, env={}, home=tmp_path) == PUBLIC_REGISTRY

    def test_environment_registry(self, tmp_path: Path):
        env = {"npm_config_registry": "https://mirror.example.com/"}
        assert get_registry_by_type(None, env=env, home=tmp_path) == "https://mirror.example.com"

    def test_npm_registry_takes_precedence(self, tmp_path: Path):
        env = {"npm_registry": "https://a.example.com", "npm_config_registry": "https://b.example.com"}
        assert get_registry_by_type("unknown", env=env, home=tmp_path) == "https://a.example.com"

    @pytest.mark.parametrize("rc", [".cnpmrc", ".tnpmrc"])
    def test_mirror_rc_forces_public_registry(self, tmp_path: Path, rc: str):
        (tmp_path / rc).write_text("registry=https://private\n", encoding="utf-8")
        env = {"npm_config_registry": "https://mirror.example.com"}
        assert get_registry_by_type(None, env=env, home=tmp_path) == PUBLIC_REGISTRY


# ---------------------------------------------------------------------------
# RegistryClient
# ---------------------------------------------------------------------------


class TestRegistryClient:
    def test_latest_url(self):
        client, _ = _client()
        assert client.registry_url == "https://registry.example.com"
        assert client.latest_url("pkg") == "https://registry.example.com/pkg/latest"

    def test_fetch_json_passes_limits(self):
        client, session = _client(_response(200, {"name": "pkg"}))
        assert client.fetch_json("https://x/pkg/latest", timeout=5, max_redirects=5) == {"name": "pkg"}
        assert session.max_redirects == 5
        session.get.assert_called_once_with("https://x/pkg/latest", timeout=5, allow_redirects=True)

    def test_non_200_is_an_error(self):
        client, _ = _client(_response(404, {"reason": "not found"}))
        with pytest.raises(RegistryError, match="404, not found"):
            client.fetch_json("https://x/pkg/latest", timeout=5, max_redirects=5)

    @pytest.mark.parametrize("exc", [requests.Timeout("slow"), requests.TooManyRedirects("loop")])
    def test_transport_errors(self, exc):
        session = MagicMock(spec=requests.Session)
        session.get.side_effect = exc
        client = RegistryClient("https://registry.example.com", session=session)
        with pytest.raises(RegistryError):
            client.fetch_json("https://x/pkg/latest", timeout=5, max_redirects=5)

    def test_fetch_stream_http_error(self):
        client, _ = _client(_response(500))
        with pytest.raises(DownloadError):
            client.fetch_stream("https://x/pkg.tgz", timeout=5)


# ---------------------------------------------------------------------------
# get_package_info
# ---------------------------------------------------------------------------


class TestGetPackageInfo:
    def test_success(self, logger):
        payload = {"name": "pkg", "dist": {"tarball": "https://x/pkg.tgz"}, "config": {"boilerplate": {}}}
        client, _ = _client(_response(200, payload))
        info = get_package_info(client, "pkg", settings=Settings(), logger=logger)
        assert info == PackageMetadata(name="pkg", dist_tarball_url="https://x/pkg.tgz", config={"boilerplate": {}})
        assert "fetching npm info of pkg" in console_output(logger)

    def test_failure_without_fallback_propagates(self, logger, tmp_path: Path):
        client, _ = _client(_response(500, {"reason": "down"}))
        with pytest.raises(RegistryError):
            get_package_info(client, "pkg", settings=Settings(), logger=logger, cwd=tmp_path)

    def test_fallback_reads_local_manifest(self, logger, tmp_path: Path):
        manifest = tmp_path / "node_modules" / "cfg" / "package.json"
        manifest.parent.mkdir(parents=True)
        manifest.write_text(json.dumps({"name": "cfg", "config": {"boilerplate": {"simple": {}}}}), encoding="utf-8")
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)
        client, _ = _client(_response(500, {"reason": "down"}))

        info = get_package_info(client, "cfg", settings=Settings(), logger=logger, with_fallback=True, cwd=nested)

        assert info.name == "cfg"
        assert info.config == {"boilerplate": {"simple": {}}}
        assert "use fallback from cfg" in console_output(logger)

    def test_fallback_without_manifest_propagates(self, logger, tmp_path: Path):
        client, _ = _client(_response(500, {"reason": "down"}))
        with pytest.raises(RegistryError):
            get_package_info(client, "cfg", settings=Settings(), logger=logger, with_fallback=True, cwd=tmp_path)


# ---------------------------------------------------------------------------
# download_boilerplate
# ---------------------------------------------------------------------------


class TestDownloadBoilerplate:
    def test_downloads_and_extracts(self, logger, tmp_path: Path):
        settings = Settings(config_name="cfg")
        stale = tmp_path / "cfg" / "pkg" / "stale.txt"
        stale.parent.mkdir(parents=True)
        stale.write_text("old", encoding="utf-8")
        archive = _tgz({"package/boilerplate/one.txt": b"Hello {{ name }}", "package/questions.yml": b"name: {}\n"})
        client, session = _client(
            _response(200, {"name": "pkg", "dist": {"tarball": "https://x/pkg.tgz"}}),
            _response(200, raw=archive),
        )

        result = download_boilerplate(client, "pkg", settings=settings, logger=logger, tmp_root=tmp_path)

        assert result == tmp_path / "cfg" / "pkg" / "package"
        assert (result / "boilerplate" / "one.txt").read_bytes() == b"Hello {{ name }}"
        assert not stale.exists()
        assert session.get.call_args_list[1].args == ("https://x/pkg.tgz",)
        assert "downloading https://x/pkg.tgz" in console_output(logger)

    def test_missing_tarball_url(self, logger, tmp_path: Path):
        client, _ = _client(_response(200, {"name": "pkg"}))
        with pytest.raises(DownloadError):
            download_boilerplate(client, "pkg", settings=Settings(), logger=logger, tmp_root=tmp_path)

    def test_corrupt_archive(self, logger, tmp_path: Path):
        client, _ = _client(
            _response(200, {"name": "pkg", "dist": {"tarball": "https://x/pkg.tgz"}}),
            _response(200, raw=io.BytesIO(b"not a tarball")),
        )
        with pytest.raises(DownloadError):
            download_boilerplate(client, "pkg", settings=Settings(), logger=logger, tmp_root=tmp_path)
