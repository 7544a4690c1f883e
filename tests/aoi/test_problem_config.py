# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Tests for problem directory configuration."""

from pathlib import Path

import pytest

from vscs_farm.aoi.config import (
    ProblemConfigError,
    ProblemDirectoryConfig,
    load_data_config,
    load_problem_config,
    parse_statement,
    split_front_matter,
)


class TestLoadProblemConfig:
    """Tests for load_problem_config."""

    def test_yaml(self, tmp_path: Path) -> None:
        """aoi.yaml is read."""
        (tmp_path / "aoi.yaml").write_text(
            "type: problem\nserver: hpcgame\nproblemId: p1\n"
        )
        assert load_problem_config(tmp_path) == ProblemDirectoryConfig(
            server="hpcgame", problem_id="p1"
        )

    def test_json(self, tmp_path: Path) -> None:
        """aoi.json is also accepted."""
        (tmp_path / "aoi.json").write_text(
            '{"type": "problem", "server": "s", "problemId": "p2"}'
        )
        assert load_problem_config(tmp_path).problem_id == "p2"

    def test_missing(self, tmp_path: Path) -> None:
        """A directory without aoi config is rejected."""
        with pytest.raises(ProblemConfigError, match="no aoi.yaml"):
            load_problem_config(tmp_path)

    def test_wrong_type(self, tmp_path: Path) -> None:
        """Only problem directories are accepted."""
        (tmp_path / "aoi.yaml").write_text(
            "type: contest\nserver: s\nproblemId: p\n"
        )
        with pytest.raises(ProblemConfigError, match="type"):
            load_problem_config(tmp_path)

    def test_missing_problem_id(self, tmp_path: Path) -> None:
        """problemId is required."""
        (tmp_path / "aoi.yaml").write_text("type: problem\nserver: s\n")
        with pytest.raises(ProblemConfigError, match="problemId"):
            load_problem_config(tmp_path)

    def test_not_a_mapping(self, tmp_path: Path) -> None:
        """A non-mapping file is rejected."""
        (tmp_path / "aoi.yml").write_text("- problem\n")
        with pytest.raises(ProblemConfigError, match="mapping"):
            load_problem_config(tmp_path)


class TestLoadDataConfig:
    """Tests for load_data_config."""

    def test_reads_mapping(self, tmp_path: Path) -> None:
        """problem.yaml is parsed into a dict."""
        (tmp_path / "problem.yaml").write_text(
            "label: default\ntimeLimit: 1000\n"
        )
        assert load_data_config(tmp_path) == {
            "label": "default",
            "timeLimit": 1000,
        }

    def test_missing(self, tmp_path: Path) -> None:
        """A missing data config is an invalid data configuration."""
        with pytest.raises(
            ProblemConfigError, match="Invalid data configuration"
        ):
            load_data_config(tmp_path)

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        """Unparseable files are reported."""
        (tmp_path / "problem.yaml").write_text("a: [b\n")
        with pytest.raises(ProblemConfigError, match="Cannot parse"):
            load_data_config(tmp_path)


class TestFrontMatter:
    """Tests for split_front_matter and parse_statement."""

    def test_split(self) -> None:
        """Front matter is separated from the body."""
        metadata, body = split_front_matter(
            "---\ntitle: A+B\ntags: [easy]\n---\n# A+B\n\nAdd.\n"
        )
        assert metadata == {"title": "A+B", "tags": ["easy"]}
        assert body == "# A+B\n\nAdd.\n"

    def test_no_front_matter(self) -> None:
        """Documents without a fence are all body."""
        assert split_front_matter("# Title\n") == ({}, "# Title\n")

    def test_empty_front_matter(self) -> None:
        """An empty header gives empty metadata."""
        assert split_front_matter("---\n---\nbody") == ({}, "body")

    def test_unterminated(self) -> None:
        """A missing closing fence is an error."""
        with pytest.raises(ProblemConfigError, match="Unterminated"):
            split_front_matter("---\ntitle: x\n")

    def test_statement_types(self) -> None:
        """Metadata with wrong types is rejected."""
        with pytest.raises(ProblemConfigError, match="title"):
            parse_statement("---\ntitle: [1]\n---\n")
        with pytest.raises(ProblemConfigError, match="tags"):
            parse_statement("---\ntags: easy\n---\n")

    def test_statement_passthrough(self) -> None:
        """Unknown metadata keys are kept."""
        metadata, body = parse_statement(
            "---\nslug: ab\nextra: 1\n---\ntext"
        )
        assert metadata == {"slug": "ab", "extra": 1}
        assert body == "text"
