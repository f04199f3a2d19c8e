"""
Tests for the entity-engine CLI against the file provider.
"""

import json

import pytest
from typer.testing import CliRunner

from entity_engine import __version__
from entity_engine.cli.main import app

CONFIG = "entity_engine.tests.sample_domain:app_config"


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def data_dir(tmp_path):
    return str(tmp_path / "data")


@pytest.fixture
def env(data_dir):
    return {"ENTITY_ENGINE_PROVIDER": "file", "ENTITY_ENGINE_DATA_DIR": data_dir, "METRICS_ENABLED": "false"}


def _append(runner, env, event_type, value):
    result = runner.invoke(app, ["events", "append", "Counter", "c-1", event_type, "--value", value], env=env)
    assert result.exit_code == 0, result.output
    return result


def test_append_and_list(runner, env):
    result = _append(runner, env, "CounterSet", '{"n": 2}')
    assert "Appended CounterSet" in result.stdout
    _append(runner, env, "CounterIncremented", '{"by": 3}')

    result = runner.invoke(app, ["events", "list", "Counter", "c-1", "--json"], env=env)

    assert result.exit_code == 0, result.output
    data = json.loads(result.stdout)
    assert data["count"] == 2
    assert [e["typeName"] for e in data["events"]] == ["CounterSet", "CounterIncremented"]


def test_list_table_and_empty(runner, env):
    result = runner.invoke(app, ["events", "list", "Counter", "nobody"], env=env)

    assert result.exit_code == 0
    assert "No events" in result.stdout


def test_append_rejects_invalid_json(runner, env):
    result = runner.invoke(app, ["events", "append", "Counter", "c-1", "CounterSet", "--value", "{oops"], env=env)

    assert result.exit_code == 2
    assert "Invalid --value JSON" in result.stdout


def test_fetch_folds_without_storing(runner, env, data_dir):
    _append(runner, env, "CounterSet", '{"n": 2}')
    _append(runner, env, "CounterIncremented", '{"by": 3}')

    result = runner.invoke(
        app, ["snapshot", "fetch", "Counter", "c-1", "-c", CONFIG, "-d", data_dir, "--json"], env=env
    )

    assert result.exit_code == 0, result.output
    snapshot = json.loads(result.stdout)["snapshot"]
    assert snapshot["value"] == {"n": 5}
    assert snapshot["kind"] == "snapshot"
    assert snapshot["version"] == 3

    result = runner.invoke(app, ["snapshot", "fetch", "Counter", "nobody", "-c", CONFIG, "--json"], env=env)
    assert json.loads(result.stdout) == {"snapshot": None}


def test_materialize_stores_snapshot(runner, env):
    _append(runner, env, "CounterSet", '{"n": 7}')

    result = runner.invoke(app, ["snapshot", "materialize", "Counter", "c-1", "-c", CONFIG], env=env)

    assert result.exit_code == 0, result.output
    assert "Folded 1 pending events" in result.stdout

    _append(runner, env, "CounterIncremented", '{"by": 1}')
    result = runner.invoke(app, ["snapshot", "materialize", "Counter", "c-1", "-c", CONFIG, "--json"], env=env)

    assert result.exit_code == 0, result.output
    assert json.loads(result.stdout)["snapshot"]["value"] == {"n": 8}


def test_fetch_with_bad_config_path(runner, env):
    result = runner.invoke(app, ["snapshot", "fetch", "Counter", "c-1", "-c", "no_such_module:cfg"], env=env)

    assert result.exit_code == 2
    assert "Error" in result.stdout


def test_version(runner):
    result = runner.invoke(app, ["version"])

    assert result.exit_code == 0
    assert __version__ in result.stdout
