# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Problem commands: deploy judge data, show statements, submit solutions."""

from __future__ import annotations

import json
import logging
import tempfile
from collections.abc import Callable
from pathlib import Path
from typing import Any

from vscs_farm.aoi import prompts
from vscs_farm.aoi.api import AoiError, PlatformApi, open_api
from vscs_farm.aoi.archive import pack_directory, pack_files, sha256_file
from vscs_farm.aoi.config import (
    ProblemConfigError,
    load_data_config,
    load_problem_config,
    parse_statement,
)


logger = logging.getLogger(__name__)

DATA_ARCHIVE = Path("dist") / "data.zip"
SUBMIT_METHODS = ("upload", "zipFolder", "form")


# ── deploy ──────────────────────────────────────────────────────────


def deploy(
    directory: Path,
    *,
    pack_only: bool = False,
    statement: bool = False,
    description: str | None = None,
    set_current: bool = False,
    rejudge: bool = False,
    api_factory: Callable[[], PlatformApi] = open_api,
) -> str:
    """Pack a problem directory's judge data and deploy it.

    Steps: pack ``data/`` plus ``problem.json`` into ``dist/data.zip``;
    optionally upload the statement; register the data under its SHA-256
    hash; optionally make it current and rejudge.

    Args:
        directory: Problem directory.
        pack_only: Stop after packing; needs no session.
        statement: Upload ``statement.md`` as the problem content.
        description: Data description; prompted for if omitted.
        set_current: Set the new data as current without asking.
        rejudge: Rejudge all solutions without asking.
        api_factory: Opens the platform API client.

    Returns:
        SHA-256 hex digest of the data archive.

    Raises:
        AoiError: If configuration is invalid, the description is empty or
            an API call fails.
    """
    data_config = load_data_config(directory)
    archive = pack_directory(
        directory / DATA_ARCHIVE,
        directory / "data",
        extra={"problem.json": json.dumps(data_config, indent=2)},
    )
    size = archive.stat().st_size
    digest = sha256_file(archive)
    logger.info("Data packed into %s size=%dBytes", archive, size)
    logger.info("Data sha256 hash = %s", digest)
    if pack_only:
        return digest

    config = load_problem_config(directory)
    problem_id = config.problem_id

    with api_factory() as api:
        if statement:
            logger.info("Uploading statement")
            metadata, body = parse_statement(_read_statement(directory))
            api.patch(
                f"problem/{problem_id}/content",
                {**metadata, "description": body},
            )
            logger.info("Statement uploaded")

        description = description or prompts.ask_text("Description")
        if not description:
            raise AoiError("Description is required")

        url = api.get_url(f"problem/{problem_id}/data/{digest}/url/upload")
        logger.info("Uploading data")
        api.upload(url, archive)
        api.post(
            f"problem/{problem_id}/data",
            {"hash": digest, "description": description, "config": data_config},
        )
        logger.info("Problem deployed with hash %s", digest[:7])

        if set_current or prompts.confirm("Set as current data?"):
            api.post(
                f"problem/{problem_id}/data/setDataHash", {"hash": digest}
            )
            logger.info("Data set as current")
            if rejudge or prompts.confirm("Rejudge solutions?"):
                result = api.post(
                    f"problem/{problem_id}/admin/rejudge-all", {"pull": True}
                )
                modified = (result or {}).get("modifiedCount", 0)
                logger.info("Rejudged %d solutions", modified)

    return digest


def _read_statement(directory: Path) -> str:
    path = directory / "statement.md"
    try:
        return path.read_text()
    except FileNotFoundError as e:
        raise ProblemConfigError(f"No statement at {path}") from e


# ── problem resolution ──────────────────────────────────────────────


def resolve_problem(
    api: PlatformApi,
    *,
    problem_id: str | None = None,
    contest_id: str | None = None,
    slug: str | None = None,
) -> tuple[str | None, str]:
    """Work out which contest and problem a command targets.

    The contest comes from ``contest_id``, else the session environment,
    else a prompt (empty answer means no contest).  The problem comes from
    ``problem_id``, else its slug is looked up in the contest.

    Returns:
        ``(contest_id or None, problem_id)``.

    Raises:
        AoiError: If the problem cannot be resolved.
    """
    contest_id = (
        contest_id or api.env.contest_id or prompts.ask_text("Contest ID")
    ) or None
    if problem_id:
        return contest_id, problem_id

    slug = slug or prompts.ask_text("Problem Slug")
    if not slug:
        raise AoiError("Cannot resolve problem ID")
    if not contest_id:
        raise AoiError("Cannot resolve problem ID outside of contest")

    for problem in api.get(f"contest/{contest_id}/problem") or []:
        settings = problem.get("settings") or {}
        if settings.get("slug") == slug:
            return contest_id, problem["_id"]
    raise AoiError(f"No problem with slug {slug!r} in contest {contest_id}")


def fetch_problem(
    api: PlatformApi, contest_id: str | None, problem_id: str
) -> dict[str, Any]:
    """Fetch a problem, scoped to the contest when there is one."""
    if contest_id:
        return api.get(f"contest/{contest_id}/problem/{problem_id}")
    return api.get(f"problem/{problem_id}")


# ── show ────────────────────────────────────────────────────────────


def show(
    api: PlatformApi,
    *,
    problem_id: str | None = None,
    contest_id: str | None = None,
    slug: str | None = None,
) -> None:
    """Render a problem's description to the terminal."""
    contest_id, problem_id = resolve_problem(
        api, problem_id=problem_id, contest_id=contest_id, slug=slug
    )
    problem = fetch_problem(api, contest_id, problem_id)
    prompts.render_markdown(problem.get("description") or "")


# ── submit ──────────────────────────────────────────────────────────


def available_methods(problem: dict[str, Any]) -> list[str]:
    """Return the submit methods a problem accepts, in config order."""
    submit_config = (problem.get("config") or {}).get("submit") or {}
    return [key for key, value in submit_config.items() if value]


def build_solution(
    method: str,
    submit_config: dict[str, Any],
    dest: Path,
    source: str | None = None,
) -> Path:
    """Pack a solution archive for the given submit method.

    Args:
        method: ``upload`` (one file), ``zipFolder`` (a directory tree)
            or ``form`` (one file per configured form field).
        submit_config: The problem's ``config.submit`` mapping.
        dest: Archive path to write.
        source: File or folder for ``upload``/``zipFolder``; prompted for
            if omitted.

    Returns:
        ``dest``.

    Raises:
        AoiError: If the method is unknown or inputs are missing.
    """
    if method == "upload":
        path = Path(source or prompts.ask_text("File"))
        return pack_files(dest, {path.name: path})

    if method == "zipFolder":
        folder = source or prompts.ask_text("Folder")
        if not folder:
            raise AoiError("Folder is required")
        return pack_directory(dest, Path(folder))

    if method == "form":
        form = submit_config.get("form") or {}
        files: dict[str, Path] = {}
        for field in form.get("files") or []:
            answer = prompts.ask_text(f"File {field['label']}")
            if not answer:
                raise AoiError(f"File {field['label']} is required")
            files[field["path"]] = Path(answer)
        if not files:
            raise AoiError("Submit form has no files")
        return pack_files(dest, files)

    raise AoiError(f"Unsupported submit method: {method}")


def submit(
    api: PlatformApi,
    *,
    problem_id: str | None = None,
    contest_id: str | None = None,
    slug: str | None = None,
    method: str | None = None,
    source: str | None = None,
) -> str:
    """Pack, upload and submit a solution.

    Args:
        api: Platform API client.
        problem_id: Problem ID; resolved from ``slug`` if omitted.
        contest_id: Contest ID; from the session or a prompt if omitted.
        slug: Problem slug within the contest.
        method: Submit method; prompted for if omitted.
        source: File or folder to submit.

    Returns:
        The submitted solution ID.

    Raises:
        AoiError: If resolution, packing or an API call fails.
    """
    contest_id, problem_id = resolve_problem(
        api, problem_id=problem_id, contest_id=contest_id, slug=slug
    )
    problem = fetch_problem(api, contest_id, problem_id)
    methods = available_methods(problem)
    if not methods:
        raise AoiError(f"Problem {problem_id} accepts no submissions")
    if method is None:
        method = prompts.select("Submit Method", methods)
    elif method not in methods:
        raise AoiError(
            f"Submit method {method!r} not accepted; "
            f"choose from {', '.join(methods)}"
        )

    submit_config = problem["config"]["submit"]
    prefix = (
        f"contest/{contest_id}/problem/{problem_id}"
        if contest_id
        else f"problem/{problem_id}"
    )
    with tempfile.TemporaryDirectory(prefix="aoi-") as tmp:
        archive = build_solution(
            method, submit_config, Path(tmp) / "solution.zip", source
        )
        size = archive.stat().st_size
        digest = sha256_file(archive)
        logger.info(
            "File packed into %s size=%dBytes sha256=%s", archive, size, digest
        )
        created = api.post(f"{prefix}/solution", {"hash": digest, "size": size})
        solution_id = created["solutionId"]
        api.upload(created["uploadUrl"], archive)
        logger.info("Uploaded solution %s", solution_id)

    if contest_id:
        submit_path = f"contest/{contest_id}/solution/{solution_id}/submit"
    else:
        submit_path = f"problem/{problem_id}/solution/{solution_id}/submit"
    api.post(submit_path, {})
    logger.info("Submitted solution %s", solution_id)
    return solution_id
