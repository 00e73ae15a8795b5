"""
helmpush.chartmuseum.client - HTTP client for ChartMuseum-compatible servers.

Endpoints, relative to the repository URL and context path:

    POST <context>/api/<repo path>/charts[?force]   multipart field "chart"
    GET  <context>/<repo path>/<file>               index.yaml, charts/*.tgz

Authentication, first match wins:

    access token + auth header  ->  <auth header>: <token>
    access token                ->  Authorization: Bearer <token>
    username + password         ->  HTTP basic auth
    otherwise                   ->  anonymous

Responses are returned as-is; see helmpush.chartmuseum.response.
"""

from __future__ import annotations

import logging
import os
import posixpath
import ssl
from typing import Any
from urllib.parse import urlsplit, urlunsplit

import requests
from requests.auth import HTTPBasicAuth

from helmpush.errors import ClientError


_LOGGER = logging.getLogger(__name__)


class Client:
    """A configured session against one chart repository."""

    def __init__(
        self,
        url: str,
        username: str = "",
        password: str = "",
        access_token: str = "",
        auth_header: str = "",
        context_path: str = "",
        ca_file: str = "",
        cert_file: str = "",
        key_file: str = "",
        insecure_skip_verify: bool = False,
        timeout: float | None = None,
    ) -> None:
        try:
            parsed = urlsplit(url)
        except ValueError as e:
            raise ClientError(f"invalid repository URL {url!r}: {e}") from e
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ClientError(f"invalid repository URL {url!r}")

        self.url = url
        self.username = username
        self.password = password
        self.access_token = access_token
        self.auth_header = auth_header
        self.context_path = context_path
        self.timeout = timeout
        self._parsed = parsed

        _check_tls_material(ca_file, cert_file, key_file)

        self.session = requests.Session()
        if insecure_skip_verify:
            self.session.verify = False
        elif ca_file:
            self.session.verify = ca_file
        if cert_file:
            self.session.cert = (cert_file, key_file)

    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
    # OPERATIONS
    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
    def upload_chart_package(self, chart_package_path: str | os.PathLike, force: bool = False) -> requests.Response:
        """Upload a packaged chart. ``force`` overwrites an existing version."""
        url = self.upload_url(force)
        try:
            f = open(chart_package_path, "rb")
        except OSError as e:
            raise ClientError(f"could not open {chart_package_path}: {e}") from e

        with f:
            files = {
                "chart": (
                    os.path.basename(chart_package_path),
                    f,
                    "application/octet-stream",
                ),
            }
            return self._request("POST", url, files=files)

    def download_file(self, file_path: str) -> requests.Response:
        """Fetch a file (index.yaml, charts/<name>-<version>.tgz) from the repository."""
        return self._request("GET", self.download_url(file_path))

    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
    # URLS
    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
    def upload_url(self, force: bool = False) -> str:
        path = _join_path(self.context_path, "api", self._repo_path(), "charts")
        return self._build_url(path, "force" if force else self._parsed.query)

    def download_url(self, file_path: str) -> str:
        path = _join_path(self.context_path, self._repo_path(), file_path)
        return self._build_url(path, self._parsed.query)

    def _repo_path(self) -> str:
        path = self._parsed.path
        if self.context_path and path.startswith(self.context_path):
            path = path[len(self.context_path):]
        return path

    def _build_url(self, path: str, query: str) -> str:
        return urlunsplit((self._parsed.scheme, self._parsed.netloc, path, query, ""))

    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
    # TRANSPORT
    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
    def auth_headers(self) -> dict[str, str]:
        if not self.access_token:
            return {}
        if self.auth_header:
            return {self.auth_header: self.access_token}
        return {"Authorization": f"Bearer {self.access_token}"}

    def basic_auth(self) -> HTTPBasicAuth | None:
        if self.access_token:
            return None
        if self.username and self.password:
            return HTTPBasicAuth(self.username, self.password)
        return None

    def _request(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        _LOGGER.debug("%s %s", method, url)
        try:
            resp = self.session.request(
                method,
                url,
                headers=self.auth_headers(),
                auth=self.basic_auth(),
                timeout=self.timeout,
                **kwargs,
            )
        except requests.RequestException as e:
            raise ClientError(f"{method} {url} failed: {e}") from e
        _LOGGER.debug("%s %s -> %s", method, url, resp.status_code)
        return resp


def _join_path(*parts: str) -> str:
    """Join URL path segments, dropping empty ones and cleaning the result."""
    joined = "/".join(p.strip("/") for p in parts if p and p.strip("/"))
    if not joined:
        return "/"
    return posixpath.normpath("/" + joined)


def _check_tls_material(ca_file: str, cert_file: str, key_file: str) -> None:
    """Fail early on unreadable or mismatched TLS files."""
    if bool(cert_file) != bool(key_file):
        raise ClientError("both a cert file and a key file are required for client authentication")

    ctx = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
    if cert_file:
        try:
            ctx.load_cert_chain(cert_file, key_file)
        except (OSError, ssl.SSLError) as e:
            raise ClientError(f"could not load client certificate {cert_file} / {key_file}: {e}") from e
    if ca_file:
        try:
            ctx.load_verify_locations(cafile=ca_file)
        except (OSError, ssl.SSLError) as e:
            raise ClientError(f"could not load CA file {ca_file}: {e}") from e
