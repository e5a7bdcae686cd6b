"""Tests for CLI module."""

import argparse
import json
import logging
from collections.abc import AsyncGenerator, Sequence
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, Mock, patch

import pytest
from rich.console import Console

from cypress_utils.cli import build_parser, main, run, run_command
from cypress_utils.engines.base import EngineError, ExecutionEngine
from cypress_utils.engines.manifest import EngineManifest
from cypress_utils.models.result import PerFileRun, RunFailure, RunSuccess
from cypress_utils.models.settings import Command, RunSettings


def make_manifest(engine: Mock) -> EngineManifest[Any]:
    """Create a manifest whose factory yields the given engine."""

    @asynccontextmanager
    async def factory(config: Any) -> AsyncGenerator[ExecutionEngine, None]:
        yield engine

    return EngineManifest(config_cls=Mock(), engine_factory=factory)


@pytest.fixture
def spec_root(tmp_path: Path) -> Path:
    """Create a spec directory with two spec files."""
    root = tmp_path / "cypress" / "integration"
    root.mkdir(parents=True)
    (root / "login.spec.js").write_text("")
    (root / "signup.spec.js").write_text("")
    return root


@pytest.fixture
def engine_mock() -> Mock:
    """Create mock engine returning a single login run."""
    engine = Mock(spec=ExecutionEngine)
    engine.execute = AsyncMock(
        return_value=RunSuccess(
            runs=[PerFileRun(spec_name="login.spec.js", stats={"tests": 5})]
        )
    )
    return engine


@pytest.fixture
def console() -> Console:
    """Create a recording console."""
    return Console(record=True, width=100, color_system=None)


def settings_for(
    spec_root: Path, command: Command = "run-parallel", **kwargs: Any
) -> RunSettings:
    return RunSettings(command=command, spec_root=spec_root, **kwargs)


class TestBuildParser:
    """Tests for argument parsing."""

    def test_stress_test_arguments(self) -> None:
        """Parses stress-test options and aliases."""
        args = build_parser().parse_args(
            [
                "stress-test",
                "login",
                "cart",
                "--limit",
                "3",
                "--count",
                "10",
                "--exclude",
                "*.hot-update.js",
                "--exclude",
                "*.skip.js",
                "--config-file",
                "false",
                "-c",
                "video=false",
            ]
        )

        assert args.command == "stress-test"
        assert args.identifiers == ["login", "cart"]
        assert args.threads == 3
        assert args.trial_count == 10
        assert args.exclude == ["*.hot-update.js", "*.skip.js"]
        assert args.config_file == "false"
        assert args.config_overrides == "video=false"

    def test_run_parallel_defaults(self) -> None:
        """Leaves unset options as None so config can fill them."""
        args = build_parser().parse_args(["run-parallel"])

        assert args.identifiers == []
        assert args.threads is None
        assert args.exclude is None
        assert args.engine == "cypress"
        assert args.engine_config == "{}"
        assert args.json is False
        assert not hasattr(args, "trial_count")


class TestRunCommand:
    """Tests for run_command function."""

    async def test_warns_when_spec_root_missing(
        self,
        tmp_path: Path,
        engine_mock: Mock,
        console: Console,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """Returns 0 without running anything when the spec root is missing."""
        settings = settings_for(tmp_path / "missing")

        with caplog.at_level(logging.WARNING):
            exit_code = await run_command(
                settings, make_manifest(engine_mock), Mock(), console=console
            )

        assert exit_code == 0
        assert "does not exist" in caplog.text
        engine_mock.execute.assert_not_called()
        assert console.export_text() == ""

    async def test_warns_when_nothing_matches(
        self,
        spec_root: Path,
        engine_mock: Mock,
        console: Console,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """Lists the identifiers tried when no spec matches."""
        settings = settings_for(spec_root, identifiers=["checkout"])

        with caplog.at_level(logging.WARNING):
            exit_code = await run_command(
                settings, make_manifest(engine_mock), Mock(), console=console
            )

        assert exit_code == 0
        assert "'checkout'" in caplog.text
        assert str(spec_root) in caplog.text
        engine_mock.execute.assert_not_called()

    async def test_run_parallel_reports_stats(
        self, spec_root: Path, engine_mock: Mock, console: Console
    ) -> None:
        """Runs each matched spec and renders the aggregated table."""
        settings = settings_for(spec_root)

        exit_code = await run_command(
            settings, make_manifest(engine_mock), Mock(), console=console
        )

        assert exit_code == 0
        assert engine_mock.execute.await_count == 2
        text = console.export_text()
        assert "Ran specs in parallel" in text
        assert "login" in text
        assert "10" in text

    async def test_stress_test_runs_each_trial(
        self, spec_root: Path, engine_mock: Mock, console: Console
    ) -> None:
        """Runs the matched spec set once per trial."""
        settings = settings_for(
            spec_root, command="stress-test", identifiers=["login"], trial_count=3
        )

        exit_code = await run_command(
            settings, make_manifest(engine_mock), Mock(), console=console
        )

        assert exit_code == 0
        assert engine_mock.execute.await_count == 3
        specs: Sequence[str] = engine_mock.execute.await_args.args[0]
        assert specs == (str(spec_root / "login.spec.js"),)
        assert "Stress tested 3 trial(s)" in console.export_text()

    async def test_prints_json(
        self,
        spec_root: Path,
        engine_mock: Mock,
        console: Console,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """Prints JSON instead of tables when requested."""
        settings = settings_for(spec_root, identifiers=["login"])

        exit_code = await run_command(
            settings, make_manifest(engine_mock), Mock(), as_json=True, console=console
        )

        assert exit_code == 0
        output = json.loads(capsys.readouterr().out)
        assert output["command"] == "run-parallel"
        assert output["subjects"] == {"login": {"tests": 5}}
        assert console.export_text() == ""

    async def test_returns_one_when_every_run_failed(
        self, spec_root: Path, engine_mock: Mock, console: Console
    ) -> None:
        """Returns 1 when no run could be counted."""
        engine_mock.execute.return_value = RunFailure(cause="no browser")

        exit_code = await run_command(
            settings_for(spec_root), make_manifest(engine_mock), Mock(), console=console
        )

        assert exit_code == 1
        assert "2 run(s) could not complete" in console.export_text()

    async def test_returns_zero_when_some_runs_counted(
        self, spec_root: Path, engine_mock: Mock, console: Console
    ) -> None:
        """Returns 0 when at least one run was counted."""
        engine_mock.execute.side_effect = [
            RunFailure(cause="no browser"),
            RunSuccess(runs=[]),
        ]

        exit_code = await run_command(
            settings_for(spec_root), make_manifest(engine_mock), Mock(), console=console
        )

        assert exit_code == 0

    async def test_returns_one_on_engine_error(
        self,
        spec_root: Path,
        engine_mock: Mock,
        console: Console,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """Logs the fatal error and prints no report."""
        engine_mock.execute.side_effect = EngineError("node not found")

        exit_code = await run_command(
            settings_for(spec_root), make_manifest(engine_mock), Mock(), console=console
        )

        assert exit_code == 1
        assert "node not found" in caplog.text
        assert console.export_text() == ""


class TestRun:
    """Tests for run function."""

    def args(self, **overrides: Any) -> argparse.Namespace:
        values: dict[str, Any] = {
            "command": "run-parallel",
            "identifiers": [],
            "threads": None,
            "config_file": "false",
            "config_overrides": None,
            "spec_root": None,
            "exclude": None,
            "test_files": None,
            "engine": "cypress",
            "engine_config": "{}",
            "json": False,
        }
        values.update(overrides)
        return argparse.Namespace(**values)

    async def test_returns_one_for_invalid_engine_config(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Returns 1 when engine config is not JSON."""
        exit_code = await run(self.args(engine_config="{not json"))

        assert exit_code == 1
        assert "Invalid configuration" in caplog.text

    async def test_returns_one_for_non_object_engine_config(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Returns 1 when engine config is JSON but not an object."""
        exit_code = await run(self.args(engine_config='["chrome"]'))

        assert exit_code == 1
        assert "Engine config must be an object" in caplog.text

    async def test_returns_one_for_unknown_engine(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Returns 1 when the engine key is unknown."""
        exit_code = await run(self.args(engine="does-not-exist"))

        assert exit_code == 1
        assert "does-not-exist" in caplog.text

    async def test_returns_one_for_invalid_threads(self) -> None:
        """Returns 1 when the concurrency limit is below 1."""
        assert await run(self.args(threads=0)) == 1

    async def test_passes_settings_to_run_command(self) -> None:
        """Builds settings and engine config, then runs the command."""
        manifest = Mock()
        manifest.config_cls = Mock(return_value="engine-config")

        with (
            patch("cypress_utils.cli.load_engine_manifest", return_value=manifest),
            patch(
                "cypress_utils.cli.run_command", new_callable=AsyncMock, return_value=0
            ) as mock_run_command,
        ):
            exit_code = await run(
                self.args(
                    command="stress-test",
                    trial_count=7,
                    threads=3,
                    engine_config='{"browser": "chrome"}',
                )
            )

        assert exit_code == 0
        manifest.config_cls.assert_called_once_with(browser="chrome")
        settings, called_manifest, engine_config = mock_run_command.await_args.args
        assert settings.command == "stress-test"
        assert settings.trial_count == 7
        assert settings.threads == 3
        assert called_manifest is manifest
        assert engine_config == "engine-config"


class TestMain:
    """Tests for main CLI entry point."""

    def test_missing_command_shows_help(
        self, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Prints help and exits non-zero without a command."""
        with (
            patch("sys.argv", ["cypress-utils"]),
            pytest.raises(SystemExit) as exc_info,
        ):
            main()

        assert exc_info.value.code == 1
        assert "run-parallel" in capsys.readouterr().err

    def test_exits_with_run_result(self) -> None:
        """Main function exits with the result from run()."""
        with (
            patch("sys.argv", ["cypress-utils", "stress-test", "login", "-n", "2"]),
            patch("cypress_utils.cli.asyncio.run", return_value=0) as mock_run,
            pytest.raises(SystemExit) as exc_info,
        ):
            main()

        assert exc_info.value.code == 0
        mock_run.assert_called_once()
        mock_run.call_args.args[0].close()

    def test_exits_with_failure_code(self) -> None:
        """Main function exits with code 1 on fatal errors."""
        with (
            patch("sys.argv", ["cypress-utils", "run-parallel"]),
            patch("cypress_utils.cli.asyncio.run", return_value=1) as mock_run,
            pytest.raises(SystemExit) as exc_info,
        ):
            main()

        assert exc_info.value.code == 1
        mock_run.call_args.args[0].close()
