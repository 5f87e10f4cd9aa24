"""herder start / stop / status."""

import logging
import os
import signal
import subprocess
import sys
from pathlib import Path

import httpx
from rich.console import Console
from rich.logging import RichHandler

from herder.config.schema import HerderConfig

PID_FILE = Path.home() / ".herder" / "server.pid"

console = Console()


def setup_logging(level: str = "INFO") -> None:
    """Route log records through Rich."""
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
        force=True,
    )


def _write_pid(pid: int) -> None:
    PID_FILE.parent.mkdir(parents=True, exist_ok=True)
    PID_FILE.write_text(str(pid))


def _read_pid() -> int | None:
    """PID of a live server, or None. A stale PID file is removed."""
    try:
        pid = int(PID_FILE.read_text().strip())
        os.kill(pid, 0)
    except FileNotFoundError:
        return None
    except (ValueError, ProcessLookupError, PermissionError):
        _remove_pid()
        return None
    return pid


def _remove_pid() -> None:
    PID_FILE.unlink(missing_ok=True)


def _server_url(config: HerderConfig) -> str:
    return f"http://{config.server.host}:{config.server.port}"


def _spawn_detached(config: HerderConfig, config_path: Path | None) -> None:
    """Run uvicorn on the ASGI entry point in its own session, logging to a file."""
    from herder.config.loader import CONFIG_ENV_VAR

    env = dict(os.environ)
    if config_path is not None:
        env[CONFIG_ENV_VAR] = str(config_path.resolve())

    log_path = Path.home() / ".herder" / "server.log"
    log_path.parent.mkdir(parents=True, exist_ok=True)
    with log_path.open("a") as log_file:
        proc = subprocess.Popen(
            [
                sys.executable,
                "-m",
                "uvicorn",
                "herder.server.asgi:app",
                "--host",
                config.server.host,
                "--port",
                str(config.server.port),
                "--log-level",
                config.logging.level.lower(),
            ],
            stdout=log_file,
            stderr=subprocess.STDOUT,
            start_new_session=True,
            env=env,
        )
    _write_pid(proc.pid)

    console.print(f"[green]herder running in the background (PID {proc.pid})[/green]")
    console.print(f"  URL: {_server_url(config)}")
    console.print(f"  Log: {log_path}")


def _run_foreground(config: HerderConfig) -> None:
    import uvicorn

    from herder.server.app import create_app

    setup_logging(config.logging.level)
    app = create_app(config)

    console.print(f"[green]herder listening on {_server_url(config)}[/green]")
    console.print(
        f"{len(config.workers)} workers in config, directory: {config.directory.method}. "
        "Ctrl+C stops."
    )

    # Our own PID, so `herder stop` also works for a foreground server
    _write_pid(os.getpid())
    try:
        uvicorn.run(
            app,
            host=config.server.host,
            port=config.server.port,
            log_level=config.logging.level.lower(),
            log_config=None,
        )
    finally:
        _remove_pid()


def start_command(config_path: str | None = None, detach: bool = False) -> None:
    """Start the control server, in the foreground or detached."""
    from herder.config.loader import ConfigError, load_config

    running = _read_pid()
    if running:
        console.print(f"[yellow]herder is already running (PID {running}).[/yellow]")
        return

    path = Path(config_path) if config_path else None
    try:
        config = load_config(path)
    except ConfigError as e:
        console.print(f"[red]{e}[/red]")
        console.print("Fix the file or run [bold]herder init --force[/bold].")
        return

    if detach:
        _spawn_detached(config, path)
    else:
        _run_foreground(config)


def stop_command() -> None:
    """Send SIGTERM to the server recorded in the PID file."""
    pid = _read_pid()
    if pid is None:
        console.print("[yellow]herder is not running.[/yellow]")
        return

    try:
        os.kill(pid, signal.SIGTERM)
    except ProcessLookupError:
        console.print(f"[yellow]PID {pid} had already exited.[/yellow]")
    else:
        console.print(f"[green]Sent SIGTERM to herder (PID {pid}).[/green]")
    finally:
        _remove_pid()


def status_command(config_path: str | None = None) -> None:
    """Ask the configured server for its health."""
    from herder.config.loader import ConfigError, load_config

    try:
        config = load_config(Path(config_path) if config_path else None)
    except ConfigError as e:
        console.print(f"[yellow]{e}; using default address[/yellow]")
        config = HerderConfig()

    url = _server_url(config)
    pid = _read_pid()
    try:
        health = httpx.get(f"{url}/health", timeout=3.0).json()
    except (httpx.HTTPError, ValueError):
        if pid:
            console.print(f"[yellow]PID {pid} is alive but {url}/health does not answer.[/yellow]")
        else:
            console.print("[yellow]herder is not running.[/yellow]")
        return

    console.print(f"[green]herder {health.get('version', '?')} is up at {url}[/green]")
    if pid:
        console.print(f"  PID:            {pid}")
    console.print(f"  Loops running:  {health.get('loops_running')}")
    console.print(f"  Reconciliation: {health.get('reconciliation_enabled')}")
