# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Tests for the vscs-farm CLI entry point."""

import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from vscs_farm import farm
from vscs_farm.config import ConfigError, FarmConfig


class TestParseVersion:
    """Tests for _parse_version."""

    def test_docker(self) -> None:
        """Docker version output is parsed."""
        output = "Docker version 24.0.7, build afdd53b"
        assert farm._parse_version(output) == (24, 0, 7)

    def test_podman(self) -> None:
        """Podman version output is parsed."""
        assert farm._parse_version("podman version 5.3.1") == (5, 3, 1)

    def test_suffix_stripped(self) -> None:
        """Non-numeric suffixes are ignored."""
        assert farm._parse_version("tool 20.10.2-rc1") == (20, 10, 2)

    def test_no_version(self) -> None:
        """Output without a version raises ValueError."""
        with pytest.raises(ValueError, match="Cannot parse"):
            farm._parse_version("no digits here")


class TestStyle:
    """Tests for _Style."""

    def test_plain(self) -> None:
        """Color off returns text unchanged."""
        assert farm._Style(False).green("ok") == "ok"

    def test_color(self) -> None:
        """Color on wraps text in escape codes."""
        assert farm._Style(True).red("x") == "\033[31mx\033[0m"

    def test_no_color_env(self) -> None:
        """NO_COLOR disables color."""
        with patch.dict("os.environ", {"NO_COLOR": "1"}):
            assert farm._use_color() is False


class TestCheckDependency:
    """Tests for _check_dependency."""

    @patch("vscs_farm.farm.shutil.which", return_value=None)
    def test_not_found(self, _which: MagicMock) -> None:
        """Missing executables fail the check."""
        ok, detail = farm._check_dependency("docker", ["docker", "--version"])
        assert ok is False
        assert detail == "docker: not found"

    @patch("vscs_farm.farm.subprocess.run")
    @patch("vscs_farm.farm.shutil.which", return_value="/usr/bin/docker")
    def test_version_ok(self, _which: MagicMock, mock_run: MagicMock) -> None:
        """Recent versions pass."""
        mock_run.return_value = subprocess.CompletedProcess(
            args=[], returncode=0, stdout="Docker version 24.0.7\n", stderr=""
        )
        ok, detail = farm._check_dependency(
            "docker", ["docker", "--version"], (20, 10)
        )
        assert ok is True
        assert detail == "docker: 24.0.7 (>= 20.10)"

    @patch("vscs_farm.farm.subprocess.run")
    @patch("vscs_farm.farm.shutil.which", return_value="/usr/bin/podman")
    def test_version_too_old(
        self, _which: MagicMock, mock_run: MagicMock
    ) -> None:
        """Old versions fail with the requirement in the detail."""
        mock_run.return_value = subprocess.CompletedProcess(
            args=[], returncode=0, stdout="podman version 3.4.4", stderr=""
        )
        ok, detail = farm._check_dependency(
            "podman", ["podman", "--version"], (4, 0)
        )
        assert ok is False
        assert detail == "podman: 3.4.4 (need >= 4.0)"

    @patch(
        "vscs_farm.farm.subprocess.run",
        side_effect=subprocess.TimeoutExpired(cmd="docker", timeout=10),
    )
    @patch("vscs_farm.farm.shutil.which", return_value="/usr/bin/docker")
    def test_timeout(self, _which: MagicMock, _run: MagicMock) -> None:
        """A hanging version command fails the check."""
        ok, detail = farm._check_dependency("docker", ["docker", "--version"])
        assert ok is False
        assert "failed to get version" in detail


class TestCmdInit:
    """Tests for cmd_init."""

    def test_creates_stub(self, tmp_path: Path) -> None:
        """A stub config is written when none exists."""
        path = tmp_path / "vscs-farm" / "farm.yaml"
        with patch("vscs_farm.farm.get_config_path", return_value=path):
            assert farm.cmd_init([]) == 0
        assert path.read_text().startswith("# VSCS Farm Server Configuration")

    def test_stub_is_loadable(self, tmp_path: Path) -> None:
        """The stub template parses into a valid configuration."""
        path = tmp_path / "farm.yaml"
        path.write_text(farm._STUB_CONFIG)
        with patch.dict("os.environ", {}, clear=True):
            config = FarmConfig.from_yaml(path)
        assert config.listen_port == 3030

    def test_existing_untouched(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """An existing config is left as is."""
        path = tmp_path / "farm.yaml"
        path.write_text("server: {}\n")
        with patch("vscs_farm.farm.get_config_path", return_value=path):
            assert farm.cmd_init([]) == 0
        assert path.read_text() == "server: {}\n"
        assert "already exists" in capsys.readouterr().out


class TestCmdCheck:
    """Tests for cmd_check."""

    @patch("vscs_farm.farm._check_dependency")
    @patch("vscs_farm.farm.load_config")
    def test_all_ok(
        self,
        mock_load: MagicMock,
        mock_dep: MagicMock,
        tmp_path: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """Valid config and runtime give exit code 0."""
        mock_load.return_value = FarmConfig(container_command="podman")
        mock_dep.return_value = (True, "podman: 5.0.0 (>= 4.0)")
        with (
            patch(
                "vscs_farm.farm.get_config_path",
                return_value=tmp_path / "farm.yaml",
            ),
            patch(
                "vscs_farm.farm.get_dotenv_path",
                return_value=tmp_path / ".env",
            ),
        ):
            assert farm.cmd_check([]) == 0
        out = capsys.readouterr().out
        assert "All checks passed." in out
        assert mock_dep.call_args.args[0] == "podman"

    @patch("vscs_farm.farm._check_dependency")
    @patch("vscs_farm.farm.load_config")
    def test_config_error(
        self,
        mock_load: MagicMock,
        mock_dep: MagicMock,
        tmp_path: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """A broken config fails the check and falls back to docker."""
        mock_load.side_effect = ConfigError("Invalid listen port: 0")
        mock_dep.return_value = (True, "docker: 24.0.7")
        with (
            patch(
                "vscs_farm.farm.get_config_path",
                return_value=tmp_path / "farm.yaml",
            ),
            patch(
                "vscs_farm.farm.get_dotenv_path",
                return_value=tmp_path / ".env",
            ),
        ):
            assert farm.cmd_check([]) == 1
        out = capsys.readouterr().out
        assert "Invalid listen port: 0" in out
        assert "Some checks failed." in out
        assert mock_dep.call_args.args[0] == "docker"


class TestCmdRunServer:
    """Tests for cmd_run_server."""

    @patch("vscs_farm.farm.configure_logging")
    @patch("vscs_farm.farm.load_config")
    def test_config_error(
        self, mock_load: MagicMock, _logging: MagicMock
    ) -> None:
        """Configuration errors give exit code 1."""
        mock_load.side_effect = ConfigError("bad")
        assert farm.cmd_run_server([]) == 1

    @patch("vscs_farm.farm.signal.signal")
    @patch("vscs_farm.farm.threading.Event")
    @patch("vscs_farm.farm.configure_logging")
    @patch("vscs_farm.farm.load_config")
    def test_overrides_and_shutdown(
        self,
        mock_load: MagicMock,
        _logging: MagicMock,
        _event: MagicMock,
        _signal: MagicMock,
    ) -> None:
        """Host and port overrides reach the server, which is stopped."""
        mock_load.return_value = FarmConfig()
        with patch("vscs_farm.server.FarmServer") as mock_server:
            code = farm.cmd_run_server(["--host", "127.0.0.1", "--port", "9"])
        assert code == 0
        config = mock_server.call_args.args[0]
        assert config.listen_host == "127.0.0.1"
        assert config.listen_port == 9
        mock_server.return_value.start.assert_called_once()
        mock_server.return_value.stop.assert_called_once()

    @patch("vscs_farm.farm.configure_logging")
    @patch("vscs_farm.farm.load_config")
    def test_startup_error(
        self, mock_load: MagicMock, _logging: MagicMock
    ) -> None:
        """Failures while binding give exit code 2."""
        mock_load.return_value = FarmConfig()
        with patch("vscs_farm.server.FarmServer") as mock_server:
            mock_server.return_value.start.side_effect = OSError("in use")
            assert farm.cmd_run_server([]) == 2


class TestCli:
    """Tests for cli dispatch."""

    def test_no_args_prints_usage(
        self, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Without arguments usage is printed and exit code is 0."""
        with patch("sys.argv", ["vscs-farm"]):
            with pytest.raises(SystemExit) as exc:
                farm.cli()
        assert exc.value.code == 0
        assert "usage: vscs-farm" in capsys.readouterr().out

    def test_unknown_command(
        self, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Unknown commands exit with code 2."""
        with patch("sys.argv", ["vscs-farm", "bogus"]):
            with pytest.raises(SystemExit) as exc:
                farm.cli()
        assert exc.value.code == 2
        assert "unknown command 'bogus'" in capsys.readouterr().err

    def test_dispatch(self) -> None:
        """Subcommands dispatch with the remaining arguments."""
        with (
            patch("sys.argv", ["vscs-farm", "run-server", "--debug"]),
            patch("vscs_farm.farm.cmd_run_server", return_value=0) as cmd,
        ):
            with pytest.raises(SystemExit) as exc:
                farm.cli()
        assert exc.value.code == 0
        cmd.assert_called_once_with(["--debug"])
