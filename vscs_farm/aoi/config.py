# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Problem directory configuration for ``aoi``.

A problem directory holds::

    aoi.yaml         # {type: problem, server: ..., problemId: ...}
    problem.yaml     # judge data config, shipped as problem.json
    statement.md     # optional, YAML front matter + markdown body
    data/            # judge data files

Both config files may also be written as ``.yml`` or ``.json``.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from vscs_farm.aoi.api import AoiError


_CONFIG_SUFFIXES = (".yaml", ".yml", ".json")
_FRONT_MATTER_FENCE = "---"


class ProblemConfigError(AoiError):
    """Raised when a problem directory's configuration is invalid."""


def _find_config(directory: Path, name: str) -> Path | None:
    for suffix in _CONFIG_SUFFIXES:
        candidate = directory / f"{name}{suffix}"
        if candidate.is_file():
            return candidate
    return None


def _load_mapping(path: Path) -> dict[str, Any]:
    """Parse a YAML or JSON file that must contain a mapping."""
    text = path.read_text()
    try:
        if path.suffix == ".json":
            data = json.loads(text)
        else:
            data = yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ProblemConfigError(f"Cannot parse {path}: {e}") from e
    if not isinstance(data, dict):
        raise ProblemConfigError(f"{path} must contain a mapping")
    return data


def load_data_config(directory: Path) -> dict[str, Any]:
    """Load the judge data config (``problem.{yaml,yml,json}``).

    Raises:
        ProblemConfigError: If the file is missing or not a mapping.
    """
    path = _find_config(directory, "problem")
    if path is None:
        raise ProblemConfigError(
            f"Invalid data configuration: no problem.yaml in {directory}"
        )
    return _load_mapping(path)


@dataclass(frozen=True)
class ProblemDirectoryConfig:
    """The ``aoi`` config of a problem directory.

    Attributes:
        server: Platform the problem lives on.
        problem_id: Platform problem ID.
    """

    server: str
    problem_id: str
    type: str = "problem"


def load_problem_config(directory: Path) -> ProblemDirectoryConfig:
    """Load ``aoi.{yaml,yml,json}`` from a problem directory.

    Raises:
        ProblemConfigError: If the file is missing or invalid.
    """
    path = _find_config(directory, "aoi")
    if path is None:
        raise ProblemConfigError(
            f"Invalid configuration: no aoi.yaml in {directory}"
        )
    data = _load_mapping(path)
    if data.get("type") != "problem":
        raise ProblemConfigError(
            f"Invalid configuration: {path} type must be 'problem'"
        )
    server = data.get("server")
    problem_id = data.get("problemId")
    if not isinstance(server, str):
        raise ProblemConfigError(
            f"Invalid configuration: {path} server must be a string"
        )
    if not isinstance(problem_id, str) or not problem_id:
        raise ProblemConfigError(
            f"Invalid configuration: {path} problemId must be a string"
        )
    return ProblemDirectoryConfig(server=server, problem_id=problem_id)


def split_front_matter(text: str) -> tuple[dict[str, Any], str]:
    """Split a markdown document into YAML front matter and body.

    Documents without a leading ``---`` fence have empty metadata.

    Raises:
        ProblemConfigError: If the front matter is unterminated or invalid.
    """
    lines = text.splitlines(keepends=True)
    if not lines or lines[0].rstrip() != _FRONT_MATTER_FENCE:
        return {}, text

    for index in range(1, len(lines)):
        if lines[index].rstrip() == _FRONT_MATTER_FENCE:
            header = "".join(lines[1:index])
            body = "".join(lines[index + 1 :])
            break
    else:
        raise ProblemConfigError("Unterminated statement front matter")

    try:
        metadata = yaml.safe_load(header) or {}
    except yaml.YAMLError as e:
        raise ProblemConfigError(f"Invalid statement metadata: {e}") from e
    if not isinstance(metadata, dict):
        raise ProblemConfigError("Invalid statement metadata: not a mapping")
    return metadata, body


def parse_statement(text: str) -> tuple[dict[str, Any], str]:
    """Parse ``statement.md`` into content metadata and description.

    Recognized metadata keys are ``title`` (str), ``slug`` (str) and
    ``tags`` (list of str); other keys are passed through.

    Raises:
        ProblemConfigError: If the metadata has the wrong types.
    """
    metadata, body = split_front_matter(text)
    for key in ("title", "slug"):
        if key in metadata and not isinstance(metadata[key], str):
            raise ProblemConfigError(
                f"Invalid statement metadata: {key} must be a string"
            )
    tags = metadata.get("tags")
    if tags is not None and (
        not isinstance(tags, list) or not all(isinstance(t, str) for t in tags)
    ):
        raise ProblemConfigError(
            "Invalid statement metadata: tags must be a list of strings"
        )
    return metadata, body
