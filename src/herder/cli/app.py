"""Main CLI application using Typer."""

import sys

import typer
from rich.console import Console

from herder import __version__

app = typer.Typer(
    name="herder",
    help="Herder - keep a worker fleet busy and drive jobs to their goals",
    no_args_is_help=True,
)

console = Console()

_CONFIG_HELP = "Path to config file (default: ~/.herder/herder.yaml)"
_URL_HELP = "Server URL (default: from config)"


@app.command()
def version():
    """Show herder version."""
    console.print(f"herder version {__version__}")


@app.command()
def init(
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite existing config"),
    path: str = typer.Option(None, "--path", "-p", help="Where to write the config"),
):
    """Write a starter configuration file."""
    from herder.cli.init_cmd import init_command

    init_command(force=force, path=path)


@app.command()
def start(
    config_path: str = typer.Option(None, "--config", "-c", help=_CONFIG_HELP),
    detach: bool = typer.Option(False, "--detach", "-d", help="Run server in background"),
):
    """Start the herder control server and its loops."""
    from herder.cli.server_cmd import start_command

    start_command(config_path=config_path, detach=detach)


@app.command()
def stop():
    """Stop the herder control server."""
    from herder.cli.server_cmd import stop_command

    stop_command()


@app.command()
def status(
    config_path: str = typer.Option(None, "--config", "-c", help=_CONFIG_HELP),
):
    """Check herder server status."""
    from herder.cli.server_cmd import status_command

    status_command(config_path=config_path)


# Fleet commands
fleet_app = typer.Typer(help="Inspect and control fleet keep-alive")
app.add_typer(fleet_app, name="fleet")


@fleet_app.command("status")
def fleet_status(
    config_path: str = typer.Option(None, "--config", "-c", help=_CONFIG_HELP),
    url: str = typer.Option(None, "--url", "-u", help=_URL_HELP),
):
    """Show every worker's observed state."""
    from herder.cli.control_cmd import fleet_status_command

    fleet_status_command(config_path=config_path, url=url)


@fleet_app.command("pause")
def fleet_pause(
    config_path: str = typer.Option(None, "--config", "-c", help=_CONFIG_HELP),
    url: str = typer.Option(None, "--url", "-u", help=_URL_HELP),
):
    """Pause fleet reconciliation."""
    from herder.cli.control_cmd import set_reconciliation_command

    set_reconciliation_command(False, config_path=config_path, url=url)


@fleet_app.command("resume")
def fleet_resume(
    config_path: str = typer.Option(None, "--config", "-c", help=_CONFIG_HELP),
    url: str = typer.Option(None, "--url", "-u", help=_URL_HELP),
):
    """Resume fleet reconciliation."""
    from herder.cli.control_cmd import set_reconciliation_command

    set_reconciliation_command(True, config_path=config_path, url=url)


@fleet_app.command("enable")
def fleet_enable(
    worker_id: str = typer.Argument(..., help="Worker to enable"),
    config_path: str = typer.Option(None, "--config", "-c", help=_CONFIG_HELP),
    url: str = typer.Option(None, "--url", "-u", help=_URL_HELP),
):
    """Enable a worker."""
    from herder.cli.control_cmd import set_worker_enabled_command

    set_worker_enabled_command(worker_id, True, config_path=config_path, url=url)


@fleet_app.command("disable")
def fleet_disable(
    worker_id: str = typer.Argument(..., help="Worker to disable"),
    config_path: str = typer.Option(None, "--config", "-c", help=_CONFIG_HELP),
    url: str = typer.Option(None, "--url", "-u", help=_URL_HELP),
):
    """Disable a worker; neither loop will contact it."""
    from herder.cli.control_cmd import set_worker_enabled_command

    set_worker_enabled_command(worker_id, False, config_path=config_path, url=url)


@fleet_app.command("remove")
def fleet_remove(
    worker_id: str = typer.Argument(..., help="Worker to remove"),
    config_path: str = typer.Option(None, "--config", "-c", help=_CONFIG_HELP),
    url: str = typer.Option(None, "--url", "-u", help=_URL_HELP),
):
    """Remove a worker from a file-backed directory."""
    from herder.cli.control_cmd import worker_remove_command

    worker_remove_command(worker_id, config_path=config_path, url=url)


# Job commands
job_app = typer.Typer(help="Create and manage goal-directed jobs")
app.add_typer(job_app, name="job")


@job_app.command("create")
def job_create(
    resource_id: str = typer.Argument(..., help="Resource the workers act on"),
    delta: int = typer.Argument(..., help="Increase to reach over the current value"),
    workers: list[str] = typer.Option(
        None, "--worker", "-w", help="Assign only these workers (repeatable)"
    ),
    config_path: str = typer.Option(None, "--config", "-c", help=_CONFIG_HELP),
    url: str = typer.Option(None, "--url", "-u", help=_URL_HELP),
):
    """Create a job."""
    from herder.cli.control_cmd import job_create_command

    job_create_command(resource_id, delta, workers or None, config_path=config_path, url=url)


@job_app.command("show")
def job_show(
    job_id: str = typer.Argument(..., help="Job id"),
    config_path: str = typer.Option(None, "--config", "-c", help=_CONFIG_HELP),
    url: str = typer.Option(None, "--url", "-u", help=_URL_HELP),
):
    """Show one job."""
    from herder.cli.control_cmd import job_show_command

    job_show_command(job_id, config_path=config_path, url=url)


@job_app.command("list")
def job_list(
    config_path: str = typer.Option(None, "--config", "-c", help=_CONFIG_HELP),
    url: str = typer.Option(None, "--url", "-u", help=_URL_HELP),
):
    """List all jobs."""
    from herder.cli.control_cmd import job_list_command

    job_list_command(config_path=config_path, url=url)


@job_app.command("stop")
def job_stop(
    job_id: str = typer.Argument(..., help="Job id"),
    config_path: str = typer.Option(None, "--config", "-c", help=_CONFIG_HELP),
    url: str = typer.Option(None, "--url", "-u", help=_URL_HELP),
):
    """Stop one job."""
    from herder.cli.control_cmd import job_stop_command

    job_stop_command(job_id, config_path=config_path, url=url)


@job_app.command("stop-all")
def job_stop_all(
    config_path: str = typer.Option(None, "--config", "-c", help=_CONFIG_HELP),
    url: str = typer.Option(None, "--url", "-u", help=_URL_HELP),
):
    """Stop every running job."""
    from herder.cli.control_cmd import job_stop_all_command

    job_stop_all_command(config_path=config_path, url=url)


# Registration key commands
key_app = typer.Typer(help="Manage the instance registration key")
app.add_typer(key_app, name="key")


@key_app.command("show")
def key_show(
    config_path: str = typer.Option(None, "--config", "-c", help=_CONFIG_HELP),
    url: str = typer.Option(None, "--url", "-u", help=_URL_HELP),
):
    """Show the current registration key."""
    from herder.cli.control_cmd import key_show_command

    key_show_command(config_path=config_path, url=url)


@key_app.command("rotate")
def key_rotate(
    new_key: str = typer.Option(None, "--key", "-k", help="Use this key instead of generating one"),
    config_path: str = typer.Option(None, "--config", "-c", help=_CONFIG_HELP),
    url: str = typer.Option(None, "--url", "-u", help=_URL_HELP),
):
    """Replace the registration key."""
    from herder.cli.control_cmd import key_rotate_command

    key_rotate_command(new_key, config_path=config_path, url=url)


def main():
    """Entry point for the CLI."""
    try:
        app()
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        sys.exit(130)
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
