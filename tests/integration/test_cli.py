import json

import pytest

import cli_router
from commands import COMMANDS, get_command
from core import config as config_module
from core.container import Container, _setup_default_services

SELECTIONS = '{"energy": 3, "duration": 30, "focus": "strength", "soreness": ["legs"]}'
# Advanced users are exempt from the evening rule, so results do not depend on the wall clock
PROFILE = '{"fitness_level": "advanced", "goals": ["strength"]}'


@pytest.fixture
def cli_container(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    config_module.reset_config()
    container = Container()
    _setup_default_services(container)
    yield container
    config_module.reset_config()


def run_cli(container, *args) -> int:
    return cli_router.main(list(args), container=container)


def test_analyze_run_prints_json(cli_container, capsys):
    code = run_cli(cli_container, "analyze", "run", "--selections", SELECTIONS, "--profile", PROFILE, "--json")

    assert code == 0
    result = json.loads(capsys.readouterr().out)
    assert len(result["recommendations"]) == 4
    assert result["recommendations"][0]["category"] == "safety"
    assert result["is_fallback"] is False


def test_analyze_run_prints_summary(cli_container, capsys):
    code = run_cli(cli_container, "analyze", "run", "--selections", SELECTIONS, "--profile", PROFILE)

    assert code == 0
    out = capsys.readouterr().out
    assert "Workout Analysis" in out
    assert "Recommendations (4)" in out


@pytest.mark.parametrize("selections", ["{not json", "[1, 2]", '{"energy": 11}'])
def test_analyze_run_rejects_bad_input(cli_container, selections):
    assert run_cli(cli_container, "analyze", "run", "--selections", selections) == 22


def test_analyze_workout_without_api_key(cli_container):
    assert run_cli(cli_container, "analyze", "workout", "--selections", SELECTIONS) == 22


def test_learning_feedback_updates_weight(cli_container, capsys):
    code = run_cli(cli_container, "learning", "feedback", "--recommendation-id", "rec_1", "--feedback", "helpful")

    assert code == 0
    assert "Weight is now 1.10" in capsys.readouterr().out

    assert run_cli(cli_container, "learning", "insights", "--json") == 0
    report = json.loads(capsys.readouterr().out)
    assert report["metrics"]["total_learning_events"] == 1


def test_learning_feedback_rejects_unknown_value(cli_container):
    code = run_cli(cli_container, "learning", "feedback", "--recommendation-id", "rec_1", "--feedback", "great")

    assert code == 2


def test_health_check_and_recover(cli_container, capsys):
    assert run_cli(cli_container, "health", "check") == 0
    out = capsys.readouterr().out
    assert "System Health Check" in out
    assert "OpenAI configuration: not set" in out

    assert run_cli(cli_container, "health", "recover", "--json") == 0
    report = json.loads(capsys.readouterr().out)
    assert report["success"] is True
    assert len(report["recovered_services"]) == 5


def test_missing_command_prints_help(cli_container, capsys):
    assert run_cli(cli_container) == 1
    assert "Workout customization analysis core" in capsys.readouterr().out


def test_invalid_configuration_exits_early(cli_container, monkeypatch):
    monkeypatch.setenv("ANALYSIS_TIMEZONE", "Mars/Olympus")

    assert run_cli(cli_container, "health", "check") == 22


def test_command_registry(cli_container):
    assert set(COMMANDS) == {"analyze", "health", "learning"}
    assert get_command("health", cli_container).get_available_subcommands() == ["check", "recover"]
    with pytest.raises(ValueError, match="Unknown command"):
        get_command("publish", cli_container)
