"""helmpush.helm - Chart and repository handling borrowed from Helm's conventions."""

from helmpush.helm.chart import (
    Chart, get_chart_by_name, create_chart_package,
)
from helmpush.helm.repo import (
    Repo, resolve_repo, get_repo_by_name, temp_repo_from_url,
    rewrite_cm_scheme, is_repo_url,
)

__all__ = [
    "Chart",
    "get_chart_by_name",
    "create_chart_package",
    "Repo",
    "resolve_repo",
    "get_repo_by_name",
    "temp_repo_from_url",
    "rewrite_cm_scheme",
    "is_repo_url",
]
