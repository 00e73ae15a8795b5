"""
helmpush.cli.download_cmd - cm:// downloader.

Helm runs plugin downloaders as ``<command> certFile keyFile caFile URL``:

  helmpush "" "" "" cm://charts.example.com/index.yaml
  helmpush "" "" "" cm://charts.example.com/charts/foo-1.0.0.tgz

The file is fetched over http(s) and written to stdout.
"""

from __future__ import annotations

from urllib.parse import urlsplit, urlunsplit

from helmpush.chartmuseum import Client, handle_download_response
from helmpush.errors import DownloadError
from helmpush.settings import Settings


def split_file_url(file_url: str, use_http: bool = False) -> tuple[str, str]:
    """Split a cm:// URL into (repository base URL, file path).

    A trailing ``charts/<file>`` stays on the file path:

        cm://host/repo/charts/foo-1.0.0.tgz  ->  (https://host/repo, charts/foo-1.0.0.tgz)
        cm://host/repo/foo-1.0.0.tgz         ->  (https://host/repo, foo-1.0.0.tgz)
    """
    try:
        parsed = urlsplit(file_url)
    except ValueError as e:
        raise DownloadError(f"invalid file url: {file_url}") from e

    parts = parsed.path.split("/")
    if len(parts) <= 1:
        raise DownloadError(f"invalid file url: {file_url}")

    file_path = parts[-1]
    num_remove = 1
    if parts[-2] == "charts":
        num_remove += 1
        file_path = "charts/" + file_path

    base_path = "/".join(parts[:-num_remove])
    scheme = "http" if use_http else "https"
    base_url = urlunsplit((scheme, parsed.netloc, base_path, parsed.query, ""))
    return base_url, file_path


def download(file_url: str, settings: Settings) -> None:
    base_url, file_path = split_file_url(file_url, settings.use_http)

    client = Client(
        base_url,
        username=settings.username,
        password=settings.password,
        access_token=settings.access_token,
        auth_header=settings.auth_header,
        context_path=settings.context_path,
        ca_file=settings.ca_file,
        cert_file=settings.cert_file,
        key_file=settings.key_file,
        insecure_skip_verify=settings.insecure_skip_verify,
    )

    resp = client.download_file(file_path)
    handle_download_response(resp)
