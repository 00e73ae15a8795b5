"""
helmpush.helm.repo - Chart repository lookup.

A repository is either a name registered with ``helm repo add``
or a bare http(s) URL:

    helm push . chartmuseum
    helm push . https://my.chart.repo.com

Registered repositories are read from Helm's repositories.yaml:

    repositories:
      - name: chartmuseum
        url: cm://charts.example.com
        username: admin
        password: secret
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path

import yaml

from helmpush.errors import RepoError
from helmpush.settings import Environ, ProcessEnviron


_LOGGER = logging.getLogger(__name__)

URL_RE = re.compile(r"^https?://")
CM_SCHEME = "cm://"


@dataclass
class Repo:
    """A chart repository endpoint."""
    name: str
    url: str
    username: str = ""
    password: str = ""

    def endpoint(self, use_http: bool) -> str:
        """URL with the cm:// marker rewritten to a real scheme."""
        return rewrite_cm_scheme(self.url, use_http)


def rewrite_cm_scheme(url: str, use_http: bool) -> str:
    """Replace the first ``cm://`` with ``http://`` or ``https://``."""
    scheme = "http://" if use_http else "https://"
    return url.replace(CM_SCHEME, scheme, 1)


def is_repo_url(repo_name: str) -> bool:
    return bool(URL_RE.match(repo_name))


def temp_repo_from_url(url: str) -> Repo:
    """An unnamed repository pointing straight at ``url``."""
    return Repo(name="", url=url)


def repositories_file(environ: Environ) -> Path:
    """Locate Helm's repositories.yaml."""
    explicit = environ.get("HELM_REPOSITORY_CONFIG")
    if explicit:
        return Path(explicit)

    # Helm 2 layout
    helm_home = environ.get("HELM_HOME")
    if helm_home:
        return Path(helm_home) / "repository" / "repositories.yaml"

    config_home = environ.get("XDG_CONFIG_HOME")
    base = Path(config_home) if config_home else environ.home() / ".config"
    return base / "helm" / "repositories.yaml"


def load_repositories(path: Path) -> dict[str, Repo]:
    """Read all registered repositories, keyed by name."""
    if not path.exists():
        return {}

    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise RepoError(f"could not read repository file {path}: {e}") from e

    if not isinstance(data, dict):
        raise RepoError(f"repository file must be a YAML mapping: {path}")

    repos: dict[str, Repo] = {}
    for entry in data.get("repositories") or []:
        if not isinstance(entry, dict) or not entry.get("name"):
            continue
        name = str(entry["name"])
        repos[name] = Repo(
            name=name,
            url=str(entry.get("url") or ""),
            username=str(entry.get("username") or ""),
            password=str(entry.get("password") or ""),
        )
    return repos


def get_repo_by_name(name: str, environ: Environ | None = None) -> Repo:
    """Look up a repository registered with ``helm repo add``."""
    environ = environ or ProcessEnviron()
    path = repositories_file(environ)
    _LOGGER.debug("Looking up repo %s in %s", name, path)

    repo = load_repositories(path).get(name)
    if repo is None:
        raise RepoError(f'no repo named "{name}" found')
    return repo


def resolve_repo(repo_name: str, environ: Environ | None = None) -> Repo:
    """Resolve a repository name or http(s) URL."""
    if is_repo_url(repo_name):
        return temp_repo_from_url(repo_name)
    return get_repo_by_name(repo_name, environ)
