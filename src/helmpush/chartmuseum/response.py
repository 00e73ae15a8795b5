"""
helmpush.chartmuseum.response - Interpreting server responses.

Upload succeeds only with 201, download only with 200. Anything else
is turned into a ChartMuseumError from the server's error envelope:

    {"error": "version already exists"}   ->  "400: version already exists"
    oops                                   ->  "404: could not properly parse response JSON: oops"
"""

from __future__ import annotations

import json
from typing import BinaryIO

import click
import requests

from helmpush.errors import ChartMuseumError


def handle_push_response(resp: requests.Response) -> None:
    try:
        if resp.status_code != 201:
            raise chartmuseum_error(resp.content, resp.status_code)
    finally:
        resp.close()
    click.echo("Done.")


def handle_download_response(resp: requests.Response, out: BinaryIO | None = None) -> None:
    """Write the body verbatim on 200, raise otherwise."""
    try:
        body = resp.content
    finally:
        resp.close()

    if resp.status_code != 200:
        raise chartmuseum_error(body, resp.status_code)

    if out is None:
        out = click.get_binary_stream("stdout")
    out.write(body)
    out.flush()


def chartmuseum_error(body: bytes, status_code: int) -> ChartMuseumError:
    """Build the error for a failed response body."""
    text = body.decode("utf-8", errors="replace")
    message = ""
    try:
        data = json.loads(text)
    except ValueError:
        data = None

    if isinstance(data, dict) and isinstance(data.get("error"), str):
        message = data["error"]

    if not message:
        return ChartMuseumError(
            status_code, f"could not properly parse response JSON: {text}",
        )
    return ChartMuseumError(status_code, message)
