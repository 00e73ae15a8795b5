"""
helmpush.settings - Effective settings resolution.

Precedence, highest first:

    command flag  >  HELM_REPO_* environment variable  >  ~/.cfconfig  >  default

~/.cfconfig (optional, read-only):

    current-context: prod
    contexts:
      a:
        name: prod
        token: s3cr3t
      b:
        name: staging
        token: other

Boolean settings are the exception: when their environment variable is
present it replaces the flag value, even one given on the command line.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

import yaml


_LOGGER = logging.getLogger(__name__)

CONFIG_FILE_NAME = ".cfconfig"

# setting attribute -> environment variable
STRING_ENV_VARS = {
    "username": "HELM_REPO_USERNAME",
    "password": "HELM_REPO_PASSWORD",
    "access_token": "HELM_REPO_ACCESS_TOKEN",
    "auth_header": "HELM_REPO_AUTH_HEADER",
    "context_path": "HELM_REPO_CONTEXT_PATH",
    "ca_file": "HELM_REPO_CA_FILE",
    "cert_file": "HELM_REPO_CERT_FILE",
    "key_file": "HELM_REPO_KEY_FILE",
}

BOOL_ENV_VARS = {
    "use_http": "HELM_REPO_USE_HTTP",
    "insecure_skip_verify": "HELM_REPO_INSECURE",
}

_TRUE = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE = {"0", "f", "F", "FALSE", "false", "False"}


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# ENVIRONMENT PROVIDER
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
class Environ(Protocol):
    """Source of environment variables and the user's home directory."""

    def get(self, name: str) -> str | None:
        ...

    def home(self) -> Path:
        ...


class ProcessEnviron:
    """The real process environment."""

    def get(self, name: str) -> str | None:
        return os.environ.get(name)

    def home(self) -> Path:
        return Path.home()


@dataclass
class StaticEnviron:
    """Fixed values, for tests and embedding."""
    values: dict[str, str] = field(default_factory=dict)
    home_dir: Path = field(default_factory=lambda: Path("/nonexistent"))

    def get(self, name: str) -> str | None:
        return self.values.get(name)

    def home(self) -> Path:
        return self.home_dir


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# SETTINGS
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
@dataclass
class Settings:
    """Effective settings for one push or download."""
    chart_name: str = ""
    chart_version: str = ""
    repo_name: str = ""
    username: str = ""
    password: str = ""
    access_token: str = ""
    auth_header: str = ""
    context_path: str = ""
    force_upload: bool = False
    use_http: bool = False
    ca_file: str = ""
    cert_file: str = ""
    key_file: str = ""
    insecure_skip_verify: bool = False

    @property
    def scheme(self) -> str:
        return "http" if self.use_http else "https"


def parse_bool(value: str) -> bool:
    """Parse a boolean the way Go's strconv.ParseBool does.

    Unrecognised spellings count as False.
    """
    if value in _TRUE:
        return True
    if value not in _FALSE:
        _LOGGER.debug("Unrecognised boolean value %r, using false", value)
    return False


def resolve_settings(settings: Settings, environ: Environ | None = None) -> Settings:
    """Fill unset fields of ``settings`` from the environment and ~/.cfconfig.

    Mutates and returns ``settings``.
    """
    environ = environ or ProcessEnviron()

    for attr, var in STRING_ENV_VARS.items():
        value = environ.get(var)
        if value is not None and not getattr(settings, attr):
            setattr(settings, attr, value)

    for attr, var in BOOL_ENV_VARS.items():
        value = environ.get(var)
        if value is not None:
            setattr(settings, attr, parse_bool(value))

    if not settings.access_token:
        token = token_from_config_file(environ)
        if token is not None:
            settings.access_token = token

    return settings


def token_from_config_file(environ: Environ) -> str | None:
    """Return the current context's token from ~/.cfconfig, if any.

    Any failure to read or parse the file means no token.
    """
    try:
        path = environ.home() / CONFIG_FILE_NAME
    except (KeyError, RuntimeError):
        return None

    if not path.exists():
        return None

    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        _LOGGER.debug("Ignoring unreadable %s: %s", path, e)
        return None

    if not isinstance(data, dict):
        return None
    contexts = data.get("contexts")
    if not isinstance(contexts, dict):
        return None

    current = data.get("current-context")
    for context in contexts.values():
        if isinstance(context, dict) and context.get("name") == current:
            token = context.get("token")
            return None if token is None else str(token)
    return None
