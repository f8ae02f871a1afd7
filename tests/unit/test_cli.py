"""Unit tests for the story-harness CLI."""

import json
import logging
import os
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from story_harness.config import ENV_VARS
from story_harness.credentials import Credential, CredentialStatus
from story_harness.errors import StoryClientError
from story_harness.executor import ScenarioReport, StepResult, StepStatus
from story_harness.harness import HarnessRun
from story_harness.main import cli


@pytest.fixture
def runner():
    """Create CLI test runner."""
    return CliRunner()


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep tests away from the real ~/.story-harness and env."""
    for var in ENV_VARS.values():
        monkeypatch.delenv(var, raising=False)
    config_path = tmp_path / ".story-harness" / "config.yaml"
    with patch("story_harness.config.get_config_path", return_value=config_path):
        yield config_path
    # Handlers set up by the CLI point at CliRunner streams that are now closed
    logging.basicConfig(force=True, handlers=[logging.NullHandler()])


def make_run(*statuses: StepStatus) -> HarnessRun:
    report = ScenarioReport()
    for order, status in enumerate(statuses, 1):
        report.results.append(
            StepResult(
                name=f"step_{order}",
                order=order,
                status=status,
                method="GET",
                path="/api/Story/All",
                expected_status=200,
                actual_status=200 if status == StepStatus.PASSED else 500,
                message="" if status == StepStatus.PASSED else "Expected status 200, got 500",
            )
        )
    return HarnessRun(
        base_url="http://stories.test",
        credential=Credential("tok", CredentialStatus.ISSUED, 200),
        rounds=[report],
    )


@pytest.mark.cli_unit
class TestRunCommand:
    """Tests for `story-harness run`."""

    def test_requires_credentials(self, runner):
        result = runner.invoke(cli, ["run", "--url", "http://stories.test"])

        assert result.exit_code == 2
        assert "Username and password are required" in result.output

    def test_passing_run_exits_zero(self, runner):
        with patch("story_harness.main.run_harness", return_value=make_run(StepStatus.PASSED)) as run:
            result = runner.invoke(
                cli, ["run", "--url", "http://stories.test", "-u", "tester", "-p", "secret"]
            )

        assert result.exit_code == 0
        assert "Scenario passed" in result.output
        config = run.call_args.args[0]
        assert config.base_url == "http://stories.test"
        assert config.get_source("username") == "flag"

    def test_failing_run_exits_nonzero(self, runner):
        failing = make_run(StepStatus.PASSED, StepStatus.FAILED)
        with patch("story_harness.main.run_harness", return_value=failing):
            result = runner.invoke(cli, ["run", "-u", "tester", "-p", "secret"])

        assert result.exit_code == 1
        assert "step_2" in result.output
        assert "Expected status 200, got 500" in result.output
        assert "Scenario failed" in result.output

    def test_json_output(self, runner):
        with patch("story_harness.main.run_harness", return_value=make_run(StepStatus.PASSED)):
            result = runner.invoke(cli, ["--json", "run", "-u", "tester", "-p", "secret"])

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["passed"] is True
        assert data["credential"] == "issued"
        assert data["rounds"][0]["steps"][0]["status"] == "passed"

    def test_repeat_and_redelete_forwarded(self, runner):
        with patch("story_harness.main.run_harness", return_value=make_run(StepStatus.PASSED)) as run:
            runner.invoke(
                cli,
                ["run", "-u", "tester", "-p", "secret", "--repeat", "3", "--include-redelete"],
            )

        assert run.call_args.kwargs["repeat"] == 3
        assert run.call_args.kwargs["include_redelete"] is True

    def test_credentials_from_env(self, runner, monkeypatch):
        monkeypatch.setenv("STORY_HARNESS_USERNAME", "env-user")
        monkeypatch.setenv("STORY_HARNESS_PASSWORD", "env-pass")
        with patch("story_harness.main.run_harness", return_value=make_run(StepStatus.PASSED)) as run:
            result = runner.invoke(cli, ["run"])

        assert result.exit_code == 0
        assert run.call_args.args[0].username == "env-user"

    def test_transport_error_exits_nonzero(self, runner):
        error = StoryClientError(message="Cannot connect to story service at stories.test")
        with patch("story_harness.main.run_harness", side_effect=error):
            result = runner.invoke(cli, ["run", "-u", "tester", "-p", "secret"])

        assert result.exit_code == 1
        assert "Cannot connect to story service" in result.output


@pytest.mark.cli_unit
class TestStepsCommand:
    """Tests for `story-harness steps`."""

    def test_steps_plan(self, runner):
        result = runner.invoke(cli, ["steps"])

        assert result.exit_code == 0
        assert "Steps (7)" in result.output
        assert "1. create_story: POST /api/Story/Create -> 201" in result.output
        assert "needs: story_id" in result.output

    def test_steps_json(self, runner):
        result = runner.invoke(cli, ["--json", "steps", "--include-redelete"])

        data = json.loads(result.output)
        assert len(data) == 8
        assert data[0]["produces"] == ["story_id"]
        assert data[-1]["name"] == "delete_story_again"


@pytest.mark.cli_unit
class TestConfigCommands:
    """Tests for `story-harness config`."""

    def test_set_show_unset(self, runner):
        result = runner.invoke(cli, ["config", "set", "base_url", "http://saved"])
        assert result.exit_code == 0

        shown = runner.invoke(cli, ["--json", "config", "show"])
        data = json.loads(shown.output)
        assert data["values"]["base_url"] == "http://saved"
        assert data["sources"]["base_url"] == "config file"

        result = runner.invoke(cli, ["config", "unset", "base_url"])
        assert "Unset base_url" in result.output

    def test_password_masked(self, runner):
        result = runner.invoke(cli, ["config", "set", "password", "hunter2"])
        assert "hunter2" not in result.output

        shown = runner.invoke(cli, ["config", "show"])
        assert "hunter2" not in shown.output
        assert "Story Harness Configuration" in shown.output

    def test_invalid_timeout_rejected(self, runner):
        result = runner.invoke(cli, ["config", "set", "timeout", "soon"])

        assert result.exit_code == 2

    def test_unknown_key_rejected(self, runner):
        result = runner.invoke(cli, ["config", "set", "server", "x"])

        assert result.exit_code == 2

    def test_set_with_unreadable_file_reports_error(self, runner, isolated_config):
        isolated_config.parent.mkdir(parents=True)
        isolated_config.write_text("base_url: [unclosed\n")

        result = runner.invoke(cli, ["config", "set", "timeout", "10"])

        assert result.exit_code == 1
        assert "not valid YAML" in result.output
        assert result.exception is None or isinstance(result.exception, SystemExit)

    def test_unset_with_unreadable_file_reports_error(self, runner, isolated_config):
        isolated_config.parent.mkdir(parents=True)
        isolated_config.write_text("base_url: [unclosed\n")

        result = runner.invoke(cli, ["config", "unset", "base_url"])

        assert result.exit_code == 1
        assert "not valid YAML" in result.output


@pytest.mark.cli_unit
def test_harness_env_vars_cleared():
    assert not any(os.environ.get(var) for var in ENV_VARS.values())


@pytest.mark.cli_unit
def test_version(runner):
    result = runner.invoke(cli, ["version"])

    assert result.exit_code == 0
    assert result.output.startswith("story-harness ")
