"""helmpush.chartmuseum - ChartMuseum transfer client and response handling."""

from helmpush.chartmuseum.client import Client
from helmpush.chartmuseum.response import (
    handle_push_response, handle_download_response, chartmuseum_error,
)

__all__ = [
    "Client",
    "handle_push_response",
    "handle_download_response",
    "chartmuseum_error",
]
