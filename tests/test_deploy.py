"""Sanity checks that the container and systemd packaging drive the installed CLI."""

from pathlib import Path

import pytest

from ollama_exporter.main import cli

ROOT = Path(__file__).resolve().parent.parent
ENV_VARS = {
    "PORT": "--port",
    "INTERVAL": "--interval",
    "OLLAMA_HOST": "--ollama-host",
    "API_TIMEOUT": "--api-timeout",
    "LOG_LEVEL": "--log-level",
}


def _read(name: str) -> str:
    return (ROOT / name).read_text()


def test_image_installs_package_and_runs_entrypoint():
    dockerfile = _read("Dockerfile")

    assert "pip install --no-cache-dir ." in dockerfile
    assert 'ENTRYPOINT ["./docker-entrypoint.sh"]' in dockerfile
    assert "/health" in dockerfile
    assert "EXPOSE 8000" in dockerfile
    for var in ENV_VARS:
        assert f"{var}=" in dockerfile


def test_entrypoint_execs_console_script_with_every_flag():
    script = _read("docker-entrypoint.sh")

    assert "exec ollama-exporter" in script
    for var, flag in ENV_VARS.items():
        assert f'{flag} "${var}"' in script


@pytest.mark.parametrize("var,flag", sorted(ENV_VARS.items()))
def test_deploy_env_vars_match_cli_options(var, flag):
    options = {opt: param for param in cli.params for opt in param.opts}
    assert options[flag].envvar == var


def test_installer_builds_venv_under_opt():
    script = _read("install-systemd.sh")

    assert 'APP_DIR="/opt/ollama-exporter"' in script
    assert '-m venv "${VENV_DIR}"' in script
    assert "ExecStart=${VENV_DIR}/bin/ollama-exporter" in script
    assert "EnvironmentFile=${ENV_FILE}" in script
    assert "systemctl enable --now" in script
    for var in ENV_VARS:
        assert f"{var}=" in script
