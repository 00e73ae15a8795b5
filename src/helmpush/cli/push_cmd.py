"""
helmpush.cli.push_cmd - Package a chart and upload it.

  helm push mychart-0.1.0.tgz chartmuseum
  helm push . chartmuseum
  helm push . --version="7c4d121" chartmuseum
  helm push . https://my.chart.repo.com
"""

from __future__ import annotations

import logging
import tempfile

import click

from helmpush.chartmuseum import Client, handle_push_response
from helmpush.helm import (
    create_chart_package, get_chart_by_name, is_repo_url, resolve_repo,
)
from helmpush.settings import Environ, Settings


_LOGGER = logging.getLogger(__name__)


def push(settings: Settings, environ: Environ | None = None) -> None:
    """Push ``settings.chart_name`` to ``settings.repo_name``.

    The packaged archive lives in a temporary directory that is
    removed however this returns.
    """
    repo = resolve_repo(settings.repo_name, environ)
    if is_repo_url(settings.repo_name):
        settings.repo_name = repo.url

    chart = get_chart_by_name(settings.chart_name)
    if settings.chart_version:
        chart.set_version(settings.chart_version)

    username = settings.username or repo.username
    password = settings.password or repo.password

    url = repo.endpoint(settings.use_http)
    _LOGGER.debug("Resolved %s to %s", settings.repo_name, url)

    client = Client(
        url,
        username=username,
        password=password,
        access_token=settings.access_token,
        auth_header=settings.auth_header,
        context_path=settings.context_path,
        ca_file=settings.ca_file,
        cert_file=settings.cert_file,
        key_file=settings.key_file,
        insecure_skip_verify=settings.insecure_skip_verify,
    )

    with tempfile.TemporaryDirectory(prefix="helm-push-") as tmp:
        chart_package_path = create_chart_package(chart, tmp)
        click.echo(f"Pushing {chart_package_path.name} to {settings.repo_name}...")
        resp = client.upload_chart_package(chart_package_path, settings.force_upload)
        handle_push_response(resp)
