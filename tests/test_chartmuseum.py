"""
tests/test_chartmuseum.py - Transfer client and response handling tests.

The HTTP session's send() is patched; no network is used.
"""

import io
import os
import sys
import base64
import pytest
from unittest.mock import patch

import requests

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from helmpush.chartmuseum.client import Client
from helmpush.chartmuseum.response import (
    chartmuseum_error, handle_download_response, handle_push_response,
)
from helmpush.errors import ChartMuseumError, ClientError


def make_response(status, body=b""):
    resp = requests.Response()
    resp.status_code = status
    resp.raw = io.BytesIO(body)
    return resp


def sent_request(client, method, *args, status=200, body=b""):
    """Call a client operation and return the PreparedRequest it sent."""
    with patch.object(client.session, "send", return_value=make_response(status, body)) as send:
        resp = getattr(client, method)(*args)
    assert resp.status_code == status
    return send.call_args[0][0]


# ─────────────────────────────────────────────
# CONSTRUCTION
# ─────────────────────────────────────────────
class TestConstruction:
    def test_rejects_non_http_url(self):
        with pytest.raises(ClientError, match="invalid repository URL"):
            Client("cm://charts.example.com")

    def test_rejects_url_without_host(self):
        with pytest.raises(ClientError):
            Client("https://")

    def test_missing_cert_file(self, tmp_path):
        with pytest.raises(ClientError, match="client certificate"):
            Client(
                "https://x",
                cert_file=str(tmp_path / "cert.pem"),
                key_file=str(tmp_path / "key.pem"),
            )

    def test_invalid_cert_pair(self, tmp_path):
        cert = tmp_path / "cert.pem"
        key = tmp_path / "key.pem"
        cert.write_text("not a certificate\n")
        key.write_text("not a key\n")
        with pytest.raises(ClientError):
            Client("https://x", cert_file=str(cert), key_file=str(key))

    def test_cert_without_key(self, tmp_path):
        with pytest.raises(ClientError, match="key file"):
            Client("https://x", cert_file="/cert.pem")

    def test_missing_ca_file(self, tmp_path):
        with pytest.raises(ClientError, match="CA file"):
            Client("https://x", ca_file=str(tmp_path / "ca.pem"))

    def test_skip_verify(self):
        assert Client("https://x", insecure_skip_verify=True).session.verify is False

    def test_default_verify(self):
        assert Client("https://x").session.verify is True


# ─────────────────────────────────────────────
# URLS
# ─────────────────────────────────────────────
class TestUrls:
    def test_upload_url(self):
        assert Client("https://host").upload_url() == "https://host/api/charts"

    def test_upload_url_with_repo_path(self):
        assert Client("https://host/org/repo/").upload_url() == \
            "https://host/api/org/repo/charts"

    def test_upload_url_force(self):
        assert Client("http://host:8080").upload_url(force=True) == \
            "http://host:8080/api/charts?force"

    def test_context_path(self):
        client = Client("https://host/cm/org", context_path="/cm")
        assert client.upload_url() == "https://host/cm/api/org/charts"
        assert client.download_url("index.yaml") == "https://host/cm/org/index.yaml"

    def test_download_url(self):
        client = Client("https://host/repo")
        assert client.download_url("charts/foo-1.0.0.tgz") == \
            "https://host/repo/charts/foo-1.0.0.tgz"

    def test_query_forwarded(self):
        client = Client("https://host/repo?x=1")
        assert client.download_url("index.yaml") == "https://host/repo/index.yaml?x=1"
        assert client.upload_url() == "https://host/api/repo/charts?x=1"
        assert client.upload_url(force=True) == "https://host/api/repo/charts?force"


# ─────────────────────────────────────────────
# AUTH + REQUESTS
# ─────────────────────────────────────────────
class TestRequests:
    @pytest.fixture
    def archive(self, tmp_path):
        path = tmp_path / "mychart-0.1.0.tgz"
        path.write_bytes(b"\x1f\x8bchart-bytes")
        return path

    def test_upload_multipart(self, archive):
        req = sent_request(Client("https://host"), "upload_chart_package", archive, False, status=201)
        assert req.method == "POST"
        assert req.url == "https://host/api/charts"
        assert req.headers["Content-Type"].startswith("multipart/form-data")
        assert b'name="chart"; filename="mychart-0.1.0.tgz"' in req.body
        assert b"chart-bytes" in req.body
        assert "Authorization" not in req.headers

    def test_upload_force(self, archive):
        req = sent_request(Client("https://host"), "upload_chart_package", archive, True, status=201)
        assert req.url.endswith("/api/charts?force")

    def test_upload_missing_file(self, tmp_path):
        with pytest.raises(ClientError, match="could not open"):
            Client("https://host").upload_chart_package(tmp_path / "nope.tgz")

    def test_basic_auth(self, archive):
        client = Client("https://host", username="admin", password="pw")
        req = sent_request(client, "upload_chart_package", archive, False)
        expected = base64.b64encode(b"admin:pw").decode()
        assert req.headers["Authorization"] == f"Basic {expected}"

    def test_username_without_password_is_anonymous(self):
        req = sent_request(Client("https://host", username="admin"), "download_file", "index.yaml")
        assert "Authorization" not in req.headers

    def test_bearer_token_beats_basic(self):
        client = Client("https://host", username="admin", password="pw", access_token="tok")
        req = sent_request(client, "download_file", "index.yaml")
        assert req.headers["Authorization"] == "Bearer tok"

    def test_custom_auth_header(self):
        client = Client(
            "https://host", username="admin", password="pw",
            access_token="tok", auth_header="X-Api-Key",
        )
        req = sent_request(client, "download_file", "index.yaml")
        assert req.headers["X-Api-Key"] == "tok"
        assert "Authorization" not in req.headers

    def test_download(self):
        req = sent_request(Client("https://host/repo"), "download_file", "charts/a-1.0.0.tgz")
        assert req.method == "GET"
        assert req.url == "https://host/repo/charts/a-1.0.0.tgz"

    def test_transport_error(self):
        client = Client("https://host")
        with patch.object(client.session, "send", side_effect=requests.ConnectionError("refused")):
            with pytest.raises(ClientError, match="refused"):
                client.download_file("index.yaml")


# ─────────────────────────────────────────────
# RESPONSES
# ─────────────────────────────────────────────
class TestResponses:
    def test_push_created(self, capsys):
        handle_push_response(make_response(201))
        assert capsys.readouterr().out == "Done.\n"

    def test_push_error_envelope(self):
        with pytest.raises(ChartMuseumError) as exc:
            handle_push_response(make_response(400, b'{"error":"version already exists"}'))
        assert str(exc.value) == "400: version already exists"
        assert exc.value.status_code == 400

    def test_push_200_is_not_success(self):
        with pytest.raises(ChartMuseumError, match="^200: "):
            handle_push_response(make_response(200, b"{}"))

    @pytest.mark.parametrize("status", [201, 409])
    def test_push_response_closed(self, status):
        resp = make_response(status, b'{"error":"exists"}')
        with patch.object(resp, "close") as close:
            if status == 201:
                handle_push_response(resp)
            else:
                with pytest.raises(ChartMuseumError):
                    handle_push_response(resp)
        close.assert_called_once_with()

    def test_download_ok(self):
        out = io.BytesIO()
        handle_download_response(make_response(200, b"abc"), out)
        assert out.getvalue() == b"abc"

    def test_download_unparseable(self):
        with pytest.raises(ChartMuseumError) as exc:
            handle_download_response(make_response(404, b"oops"), io.BytesIO())
        assert str(exc.value) == "404: could not properly parse response JSON: oops"

    def test_empty_error_field(self):
        err = chartmuseum_error(b'{"error": ""}', 500)
        assert str(err) == '500: could not properly parse response JSON: {"error": ""}'

    def test_non_object_json(self):
        err = chartmuseum_error(b"[1, 2]", 502)
        assert str(err) == "502: could not properly parse response JSON: [1, 2]"
