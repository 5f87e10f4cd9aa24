"""Tests for CLI init command."""

import pytest
import typer
import yaml

from herder.cli.init_cmd import CONFIG_TEMPLATE, init_command
from herder.config.loader import load_config


def test_template_is_valid_config():
    """The starter template parses into a valid configuration."""
    data = yaml.safe_load(CONFIG_TEMPLATE)
    assert data["server"]["port"] == 8700


def test_init_writes_config(tmp_config_path):
    init_command(path=str(tmp_config_path))

    assert tmp_config_path.exists()
    config = load_config(tmp_config_path)
    assert config.workers == []
    assert config.monitor.max_restarts == 10
    assert config.registration.key_file == "~/.herder/registration.key"


def test_init_refuses_to_overwrite(tmp_config_path):
    tmp_config_path.write_text("server:\n  port: 9999\n")

    with pytest.raises(typer.Exit):
        init_command(path=str(tmp_config_path))

    assert load_config(tmp_config_path).server.port == 9999


def test_init_force_overwrites(tmp_config_path):
    tmp_config_path.write_text("server:\n  port: 9999\n")

    init_command(force=True, path=str(tmp_config_path))

    assert load_config(tmp_config_path).server.port == 8700
