# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Contest commands: export a ranklist with each participant's solutions.

The export writes one directory per participant::

    <output>/
      01-Alice/
        stats.txt
        a.zip        # best solution of problem "a"
        a/           # ...extracted
      02-Bob/
        ...

``stats.txt`` lists every solution per problem in submission order and
marks the selected (highest-scoring, earliest on ties) one with ``*``.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from vscs_farm.aoi import prompts
from vscs_farm.aoi.api import AoiError, PlatformApi
from vscs_farm.aoi.archive import ArchiveError, extract_zip


logger = logging.getLogger(__name__)

SOLUTIONS_PER_PAGE = 30

_UNSAFE_FILENAME_CHARS = re.compile(r'[/\\?<>:*|"\x00-\x1f\x80-\x9f]')
_MAX_FILENAME_BYTES = 255


def sanitize_filename(name: str) -> str:
    """Make ``name`` safe to use as a single path component.

    Strips path separators, characters reserved on common filesystems
    and control characters.  ``.`` and ``..`` become ``_``.
    """
    cleaned = _UNSAFE_FILENAME_CHARS.sub("", name)
    if cleaned in {"", ".", ".."}:
        return "_"
    encoded = cleaned.encode()[:_MAX_FILENAME_BYTES]
    return encoded.decode(errors="ignore")


def format_submitted_at(value: Any) -> str:
    """Format a millisecond timestamp like JavaScript's ``toISOString``."""
    if not value:
        return "UNSUBMITTED"
    moment = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    return (
        moment.strftime("%Y-%m-%dT%H:%M:%S.")
        + f"{moment.microsecond // 1000:03d}Z"
    )


def select_best(solutions: list[dict[str, Any]]) -> dict[str, Any]:
    """Return the highest-scoring solution; the earliest wins ties."""
    selected = solutions[0]
    for solution in solutions:
        if (solution.get("score") or 0) > (selected.get("score") or 0):
            selected = solution
    return selected


def _submission_order(solution: dict[str, Any]) -> float:
    submitted_at = solution.get("submittedAt")
    return float(submitted_at) if submitted_at else float("inf")


def _format_score(score: Any) -> str:
    if isinstance(score, float) and score.is_integer():
        return str(int(score))
    return str(score)


def group_by_problem(
    solutions: list[dict[str, Any]], slugs: dict[str, str]
) -> dict[str, list[dict[str, Any]]]:
    """Group solutions by problem slug, each group in submission order.

    Unsubmitted solutions sort last; problems keep first-seen order.
    """
    grouped: dict[str, list[dict[str, Any]]] = {}
    for solution in sorted(solutions, key=_submission_order):
        problem_id = solution.get("problemId", "")
        slug = slugs.get(problem_id, problem_id)
        grouped.setdefault(slug, []).append(solution)
    return grouped


def format_stats(
    slug: str, solutions: list[dict[str, Any]], selected: dict[str, Any]
) -> str:
    """Render one problem's block of ``stats.txt``."""
    lines = [f"Problem {slug} Total {len(solutions)} solutions"]
    for solution in solutions:
        line = (
            f"{format_submitted_at(solution.get('submittedAt'))} "
            f"{solution['_id']} {_format_score(solution.get('score'))}"
        )
        if solution["_id"] == selected["_id"]:
            line += " *"
        lines.append(line)
    return "\n".join(lines) + "\n\n"


def fetch_solutions(
    api: PlatformApi, contest_id: str, user_id: str
) -> list[dict[str, Any]]:
    """Page through every solution a user submitted in a contest."""
    solutions: list[dict[str, Any]] = []
    page = 1
    while True:
        result = api.get(
            f"contest/{contest_id}/solution",
            params={
                "userId": user_id,
                "page": page,
                "perPage": SOLUTIONS_PER_PAGE,
            },
        )
        items = (result or {}).get("items") or []
        if not items:
            return solutions
        solutions.extend(items)
        page += 1


def _export_participant(
    api: PlatformApi,
    contest_id: str,
    slugs: dict[str, str],
    directory: Path,
    user_id: str,
) -> None:
    directory.mkdir(parents=True, exist_ok=True)
    grouped = group_by_problem(
        fetch_solutions(api, contest_id, user_id), slugs
    )
    stats = ""
    for slug, solutions in grouped.items():
        selected = select_best(solutions)
        stats += format_stats(slug, solutions, selected)

        url = api.get_url(
            f"contest/{contest_id}/solution/{selected['_id']}/data/download"
        )
        safe_slug = sanitize_filename(slug)
        archive = directory / f"{safe_slug}.zip"
        api.download(url, archive)
        try:
            extract_zip(archive, directory / safe_slug)
        except ArchiveError as e:
            logger.warning("Keeping unextracted %s: %s", archive, e)
    (directory / "stats.txt").write_text(stats)


def export_ranklist(
    api: PlatformApi,
    output: Path,
    *,
    contest_id: str | None = None,
    ranklist_key: str | None = None,
    limit: int | None = None,
    assume_yes: bool = False,
    confirm: Callable[[str], bool] | None = None,
) -> int:
    """Export the top participants of a ranklist with their solutions.

    Args:
        api: Platform API client.
        output: Output directory.
        contest_id: Contest ID; from the session or a prompt if omitted.
        ranklist_key: Ranklist key; prompted for if omitted.
        limit: Export at most this many participants.
        assume_yes: Skip the confirmation prompt.
        confirm: Confirmation prompt; defaults to an interactive one.

    Returns:
        Number of exported participants (0 if declined).

    Raises:
        AoiError: If an API call fails or required input is missing.
    """
    contest_id = (
        contest_id or api.env.contest_id or prompts.ask_text("Contest ID")
    )
    if not contest_id:
        raise AoiError("Contest ID is required")

    problems = api.get(f"contest/{contest_id}/problem") or []
    slugs = {
        problem["_id"]: (problem.get("settings") or {}).get("slug", "")
        for problem in problems
    }

    ranklist_key = ranklist_key or prompts.ask_text("Ranklist Key")
    if not ranklist_key:
        raise AoiError("Ranklist key is required")
    url = api.get_url(
        f"contest/{contest_id}/ranklist/{ranklist_key}/url/download"
    )
    ranklist = api.fetch_json(url)
    participants = ranklist["participant"]["list"]
    if limit is not None:
        participants = participants[:limit]

    ask = confirm or prompts.confirm
    if not assume_yes and not ask(
        f"Will export {len(participants)} participants, continue?"
    ):
        return 0

    total = len(participants)
    digits = len(str(total))
    for index, participant in enumerate(participants, start=1):
        user_id = participant["userId"]
        logger.info(
            "Exporting (%s/%d) %s", str(index).zfill(digits), total, user_id
        )
        user = api.get(f"user/{user_id}")
        name = user["profile"]["name"]
        rank = str(participant["rank"]).zfill(digits)
        directory = output / sanitize_filename(f"{rank}-{name}")
        _export_participant(api, contest_id, slugs, directory, user_id)

    logger.info("Exported %d participants", total)
    return total
