"""
helmpush.helm.chart - Chart loading and packaging.

A chart is either a directory:

    mychart/
    ├── Chart.yaml
    ├── values.yaml
    ├── .helmignore
    └── templates/

or an archive produced by ``helm package`` (mychart-0.1.0.tgz), whose
single top-level directory holds the same layout.

Packaging writes ``<name>-<version>.tgz`` with every file under
``<name>/`` and Chart.yaml re-serialised, so a version override
ends up in the archive.
"""

from __future__ import annotations

import fnmatch
import io
import os
import tarfile
import time
import zlib
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Any

import yaml

from helmpush.errors import ChartError


CHART_FILE = "Chart.yaml"
IGNORE_FILE = ".helmignore"

# Chart.yaml keys Helm decodes as strings; keeps "1.10" from becoming 1.1
STRING_KEYS = {"name", "version", "appVersion", "kubeVersion"}


class _ChartYamlLoader(yaml.SafeLoader):
    """SafeLoader that reads the top-level STRING_KEYS verbatim."""

    def construct_document(self, node):
        if isinstance(node, yaml.MappingNode):
            for key_node, value_node in node.value:
                if (isinstance(key_node, yaml.ScalarNode) and key_node.value in STRING_KEYS
                        and isinstance(value_node, yaml.ScalarNode)):
                    value_node.tag = "tag:yaml.org,2002:str"
        return super().construct_document(node)


@dataclass
class Chart:
    """A loaded chart: Chart.yaml metadata plus file contents."""
    metadata: dict[str, Any]
    files: dict[str, bytes] = field(default_factory=dict)

    @property
    def name(self) -> str:
        return str(self.metadata["name"])

    @property
    def version(self) -> str:
        return str(self.metadata["version"])

    def set_version(self, version: str) -> None:
        self.metadata["version"] = version

    @property
    def archive_name(self) -> str:
        return f"{self.name}-{self.version}.tgz"


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# LOADING
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
def get_chart_by_name(name: str | Path) -> Chart:
    """Load a chart from a directory or a packaged .tgz."""
    path = Path(name)
    if path.is_dir():
        return load_chart_dir(path)
    if path.is_file():
        return load_chart_archive(path)
    raise ChartError(f"chart not found: {name}")


def load_chart_dir(chart_dir: Path) -> Chart:
    chart_file = chart_dir / CHART_FILE
    if not chart_file.is_file():
        raise ChartError(f"{CHART_FILE} not found in {chart_dir}")

    rules = _read_ignore_rules(chart_dir / IGNORE_FILE)
    files: dict[str, bytes] = {}

    try:
        for root, dirs, filenames in os.walk(chart_dir):
            rel_root = Path(root).relative_to(chart_dir)
            # prune ignored directories in place
            dirs[:] = sorted(
                d for d in dirs
                if not _is_ignored(_posix(rel_root / d), True, rules)
            )
            for fn in sorted(filenames):
                rel = _posix(rel_root / fn)
                if _is_ignored(rel, False, rules):
                    continue
                with open(Path(root) / fn, "rb") as f:
                    files[rel] = f.read()
        raw = chart_file.read_bytes()
    except OSError as e:
        raise ChartError(f"could not read chart {chart_dir}: {e}") from e

    files.pop(CHART_FILE, None)
    metadata = _parse_metadata(raw, str(chart_file))
    return Chart(metadata=metadata, files=files)


def load_chart_archive(archive: Path) -> Chart:
    try:
        tar = tarfile.open(archive, "r:*")
    except (tarfile.TarError, EOFError, zlib.error, OSError) as e:
        raise ChartError(f"{archive} is not a chart archive: {e}") from e

    files: dict[str, bytes] = {}
    try:
        with tar:
            for member in tar.getmembers():
                if not member.isfile():
                    continue
                parts = PurePosixPath(member.name).parts
                # strip the top-level chart directory
                if len(parts) < 2:
                    continue
                rel = str(PurePosixPath(*parts[1:]))
                extracted = tar.extractfile(member)
                if extracted is not None:
                    files[rel] = extracted.read()
    except (tarfile.TarError, EOFError, zlib.error, OSError) as e:
        raise ChartError(f"{archive} is not a chart archive: {e}") from e

    if CHART_FILE not in files:
        raise ChartError(f"{CHART_FILE} not found in {archive}")

    metadata = _parse_metadata(files.pop(CHART_FILE), str(archive))
    return Chart(metadata=metadata, files=files)


def _parse_metadata(raw: bytes, source: str) -> dict[str, Any]:
    try:
        metadata = yaml.load(raw, Loader=_ChartYamlLoader)
    except yaml.YAMLError as e:
        raise ChartError(f"invalid {CHART_FILE} in {source}: {e}") from e

    if not isinstance(metadata, dict):
        raise ChartError(f"{CHART_FILE} must be a YAML mapping: {source}")
    for key in ("name", "version"):
        if not metadata.get(key):
            raise ChartError(f"{CHART_FILE} in {source} has no {key}")
    return metadata


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# .helmignore
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
def _read_ignore_rules(path: Path) -> list[tuple[str, bool, bool]]:
    """Parse .helmignore into (pattern, negated, dir_only) rules."""
    if not path.is_file():
        return []

    try:
        text = path.read_text()
    except (OSError, UnicodeDecodeError) as e:
        raise ChartError(f"could not read {path}: {e}") from e

    rules = []
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        negated = line.startswith("!")
        if negated:
            line = line[1:]
        dir_only = line.endswith("/")
        rules.append((line.rstrip("/"), negated, dir_only))
    return rules


def _is_ignored(rel: str, is_dir: bool, rules: list[tuple[str, bool, bool]]) -> bool:
    """Last matching rule wins."""
    ignored = False
    basename = rel.rsplit("/", 1)[-1]
    for pattern, negated, dir_only in rules:
        if dir_only and not is_dir:
            continue
        target = rel if "/" in pattern else basename
        if fnmatch.fnmatchcase(target, pattern.lstrip("/")):
            ignored = not negated
    return ignored


def _posix(path: Path) -> str:
    return path.as_posix()


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# PACKAGING
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
def create_chart_package(chart: Chart, out_dir: str | Path) -> Path:
    """Write ``<name>-<version>.tgz`` into ``out_dir`` and return its path."""
    out_dir = Path(out_dir)
    if not out_dir.is_dir():
        raise ChartError(f"output directory does not exist: {out_dir}")

    tar_path = out_dir / chart.archive_name
    chart_yaml = yaml.safe_dump(chart.metadata, sort_keys=False).encode()
    mtime = int(time.time())

    with tarfile.open(tar_path, "w:gz") as tar:
        _add_bytes(tar, f"{chart.name}/{CHART_FILE}", chart_yaml, mtime)
        for rel in sorted(chart.files):
            _add_bytes(tar, f"{chart.name}/{rel}", chart.files[rel], mtime)

    return tar_path


def _add_bytes(tar: tarfile.TarFile, arcname: str, data: bytes, mtime: int) -> None:
    info = tarfile.TarInfo(name=arcname)
    info.size = len(data)
    info.mode = 0o644
    info.mtime = mtime
    tar.addfile(info, io.BytesIO(data))
