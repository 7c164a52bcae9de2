import json

import pytest
from click.testing import CliRunner

import deployment.stakestark
from deployment.cli import deploy, show
from deployment.constants import DEFAULT_PARAMS_FILEPATH
from tests.conftest import BASELINE_PARAMS, ENVIRONMENT


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def patched_network(monkeypatch, make_network):
    network = make_network()

    class _Network:
        @classmethod
        def from_config(cls, config):
            return network

    monkeypatch.setattr(deployment.stakestark, "StarknetNetwork", _Network)
    return network


@pytest.fixture
def cli_environment(monkeypatch, environ):
    for name, value in environ.items():
        monkeypatch.setenv(name, value)
    return environ


def test_default_params_file():
    assert DEFAULT_PARAMS_FILEPATH == BASELINE_PARAMS
    assert DEFAULT_PARAMS_FILEPATH.exists()


def test_deploy(runner, patched_network, cli_environment, project_dir):
    record_filepath = project_dir / "stakestark.json"
    with runner.isolated_filesystem(temp_dir=project_dir) as cwd:
        # artifacts are looked up relative to the working directory
        (project_dir / "target").rename(f"{cwd}/target")
        result = runner.invoke(
            deploy,
            ["--params-filepath", str(BASELINE_PARAMS), "-o", str(record_filepath), "--autosign"],
        )

    assert result.exit_code == 0, result.output
    assert "StakeStark deployed at: 0x499c0ffee" in result.output
    assert json.loads(record_filepath.read_text())["contracts"]["stSTRK"] == {"address": "0x577"}


def test_deploy_with_env_file(runner, patched_network, monkeypatch, project_dir):
    for name in ENVIRONMENT:
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    env_file = project_dir / "deploy.env"
    env_file.write_text("\n".join(f"{name}={value}" for name, value in ENVIRONMENT.items()))

    with runner.isolated_filesystem(temp_dir=project_dir) as cwd:
        (project_dir / "target").rename(f"{cwd}/target")
        result = runner.invoke(
            deploy,
            ["-e", str(env_file), "-o", str(project_dir / "out.json"), "--autosign"],
        )

    assert result.exit_code == 0, result.output


def test_deploy_with_missing_environment(runner, patched_network, cli_environment, monkeypatch):
    monkeypatch.delenv("ADMIN_ADDRESS")
    with runner.isolated_filesystem():
        result = runner.invoke(deploy, ["--autosign"])

    assert result.exit_code == 1
    assert "Error: Invalid deployment environment: missing ADMIN_ADDRESS" in result.output
    assert patched_network.calls == []


def test_deploy_aborted_by_user(runner, patched_network, cli_environment, project_dir):
    with runner.isolated_filesystem(temp_dir=project_dir) as cwd:
        (project_dir / "target").rename(f"{cwd}/target")
        result = runner.invoke(deploy, ["-o", str(project_dir / "out.json")], input="n\n")

    assert result.exit_code == 1
    assert "Aborted" in result.output
    assert patched_network.calls == []


def test_show(runner, patched_network, cli_environment, project_dir):
    record_filepath = project_dir / "stakestark.json"
    with runner.isolated_filesystem(temp_dir=project_dir) as cwd:
        (project_dir / "target").rename(f"{cwd}/target")
        runner.invoke(deploy, ["-o", str(record_filepath), "--autosign"])

    result = runner.invoke(show, [str(record_filepath)])
    assert result.exit_code == 0, result.output
    assert "LST: 0x577" in result.output
    assert "Delegator[2]: 0xd3" in result.output


def test_show_malformed_record(runner, tmp_path):
    filepath = tmp_path / "record.json"
    filepath.write_text("[]")
    result = runner.invoke(show, [str(filepath)])
    assert result.exit_code == 1
    assert "Error: Malformed deployment record" in result.output
