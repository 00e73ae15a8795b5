"""
helmpush.errors - Exceptions raised by helm-push.

Library modules raise these; only the CLI turns them into
``Error: ...`` on stderr and exit code 1.
"""

from __future__ import annotations


class HelmPushError(Exception):
    """Base class for every helm-push failure."""
    pass


class RepoError(HelmPushError):
    """Chart repository could not be resolved."""
    pass


class ChartError(HelmPushError):
    """Chart could not be loaded or packaged."""
    pass


class ClientError(HelmPushError):
    """Transfer client construction or transport failure."""
    pass


class DownloadError(HelmPushError):
    """Malformed cm:// pseudo-URL."""
    pass


class ChartMuseumError(HelmPushError):
    """Error reported by the chart repository server."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message
