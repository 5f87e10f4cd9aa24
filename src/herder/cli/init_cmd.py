"""Initialize command - starter config generation."""

import typer
from rich.console import Console
from rich.panel import Panel

from herder.config.loader import resolve_config_path

console = Console()

CONFIG_TEMPLATE = """# herder configuration

server:
  host: 127.0.0.1
  port: 8700

# Where fleet membership comes from: 'explicit' (the list below) or 'file'
directory:
  method: explicit
  path: ~/.herder/instances.json

# workers:
#   - id: w1
#     endpoint: http://10.0.0.5:3000
#     enabled: true
#   - id: w2
#     endpoint: http://10.0.0.6:3000
#     enabled: true
workers: []

client:
  status_timeout: 5.0    # GET /status
  command_timeout: 15.0  # POST /start, POST /stop

reconciler:
  enabled: true
  interval: 30.0
  keepalive_target: 1000000000
  keepalive_resource: keepalive
  yield_to_jobs: true    # leave job workers to the job monitor

monitor:
  interval: 15.0
  max_restarts: 10

metrics:
  url_template: http://localhost:8800/metrics/{resource_id}
  value_field: value
  timeout: 5.0

registration:
  key_file: ~/.herder/registration.key

logging:
  level: INFO
"""


def init_command(force: bool = False, path: str | None = None) -> None:
    """Write the starter configuration.

    Args:
        force: Overwrite existing config if present
        path: Destination (default: ~/.herder/herder.yaml)
    """
    target = resolve_config_path(path)

    console.print(
        Panel.fit(
            "[bold blue]herder initialization[/bold blue]\n"
            "Writing a starter fleet configuration...",
            border_style="blue",
        )
    )

    if target.exists() and not force:
        console.print(f"\n[yellow]Config already exists at {target}[/yellow]")
        console.print("Use [bold]--force[/bold] to overwrite.")
        raise typer.Exit(0)

    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(CONFIG_TEMPLATE)
    console.print(f"\n[green]✓ Configuration saved to {target}[/green]")

    console.print("\nNext steps:")
    console.print("  1. Add your workers under [bold]workers:[/bold]")
    console.print("  2. Point [bold]metrics.url_template[/bold] at your metric endpoint")
    console.print("  3. Start the server: [bold]herder start[/bold]")
