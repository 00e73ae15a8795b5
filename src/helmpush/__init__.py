"""
helmpush - Helm plugin to push chart packages to ChartMuseum.

Also serves as Helm's downloader for the cm:// protocol.
"""

from helmpush.errors import (
    HelmPushError, RepoError, ChartError, ClientError, DownloadError,
    ChartMuseumError,
)
from helmpush.settings import Settings, resolve_settings

__version__ = "0.1.0"

__all__ = [
    "HelmPushError",
    "RepoError",
    "ChartError",
    "ClientError",
    "DownloadError",
    "ChartMuseumError",
    "Settings",
    "resolve_settings",
]
