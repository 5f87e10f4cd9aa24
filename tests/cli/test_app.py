"""Tests for CLI app entry point."""

from unittest.mock import patch

from typer.testing import CliRunner

from herder.cli.app import app, main

runner = CliRunner()


def test_version_command():
    """Test 'version' prints herder version string."""
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert "herder version" in result.output


def test_no_args_shows_help():
    """Test invoking with no arguments shows help (no_args_is_help)."""
    result = runner.invoke(app, [])
    assert result.exit_code in (0, 2)
    assert "Usage" in result.output or "herder" in result.output


def test_init_command():
    """Test 'init' delegates to init_command."""
    with patch("herder.cli.init_cmd.init_command") as mock_init:
        result = runner.invoke(app, ["init", "--force"])
        mock_init.assert_called_once_with(force=True, path=None)
        assert result.exit_code == 0


def test_start_command():
    with patch("herder.cli.server_cmd.start_command") as mock_cmd:
        result = runner.invoke(app, ["start", "--detach", "--config", "/tmp/h.yaml"])
        mock_cmd.assert_called_once_with(config_path="/tmp/h.yaml", detach=True)
        assert result.exit_code == 0


def test_stop_and_status_commands():
    with (
        patch("herder.cli.server_cmd.stop_command") as mock_stop,
        patch("herder.cli.server_cmd.status_command") as mock_status,
    ):
        assert runner.invoke(app, ["stop"]).exit_code == 0
        assert runner.invoke(app, ["status"]).exit_code == 0
        mock_stop.assert_called_once()
        mock_status.assert_called_once_with(config_path=None)


def test_fleet_pause_and_resume():
    with patch("herder.cli.control_cmd.set_reconciliation_command") as mock_cmd:
        runner.invoke(app, ["fleet", "pause"])
        runner.invoke(app, ["fleet", "resume", "--url", "http://x:1"])

        assert mock_cmd.call_args_list[0].args == (False,)
        assert mock_cmd.call_args_list[1].args == (True,)
        assert mock_cmd.call_args_list[1].kwargs["url"] == "http://x:1"


def test_fleet_enable_disable_and_remove():
    with (
        patch("herder.cli.control_cmd.set_worker_enabled_command") as mock_enable,
        patch("herder.cli.control_cmd.worker_remove_command") as mock_remove,
    ):
        assert runner.invoke(app, ["fleet", "disable", "w1"]).exit_code == 0
        assert runner.invoke(app, ["fleet", "enable", "w1"]).exit_code == 0
        assert runner.invoke(app, ["fleet", "remove", "w4"]).exit_code == 0

        assert mock_enable.call_args_list[0].args == ("w1", False)
        assert mock_enable.call_args_list[1].args == ("w1", True)
        assert mock_remove.call_args.args == ("w4",)


def test_job_create_with_workers():
    with patch("herder.cli.control_cmd.job_create_command") as mock_cmd:
        result = runner.invoke(app, ["job", "create", "video123", "5000", "-w", "w1", "-w", "w2"])

        assert result.exit_code == 0
        mock_cmd.assert_called_once_with(
            "video123", 5000, ["w1", "w2"], config_path=None, url=None
        )


def test_job_create_defaults_to_all_workers():
    with patch("herder.cli.control_cmd.job_create_command") as mock_cmd:
        runner.invoke(app, ["job", "create", "video123", "5000"])

        assert mock_cmd.call_args.args == ("video123", 5000, None)


def test_job_stop_all():
    with patch("herder.cli.control_cmd.job_stop_all_command") as mock_cmd:
        result = runner.invoke(app, ["job", "stop-all"])
        mock_cmd.assert_called_once()
        assert result.exit_code == 0


def test_key_rotate():
    with patch("herder.cli.control_cmd.key_rotate_command") as mock_cmd:
        runner.invoke(app, ["key", "rotate", "--key", "ABCDEF123"])
        assert mock_cmd.call_args.args == ("ABCDEF123",)


def test_main_keyboard_interrupt():
    """Test main() handles KeyboardInterrupt with exit code 130."""
    with (
        patch("herder.cli.app.app", side_effect=KeyboardInterrupt),
        patch("herder.cli.app.sys") as mock_sys,
    ):
        main()
        mock_sys.exit.assert_called_with(130)


def test_main_exception():
    """Test main() handles unexpected exceptions with exit code 1."""
    with (
        patch("herder.cli.app.app", side_effect=RuntimeError("test error")),
        patch("herder.cli.app.sys") as mock_sys,
    ):
        main()
        mock_sys.exit.assert_called_with(1)
