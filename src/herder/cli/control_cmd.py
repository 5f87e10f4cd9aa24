"""CLI commands that talk to a running herder server."""

from typing import Any

import httpx
import typer
from rich.console import Console
from rich.table import Table

from herder.config.loader import load_config

console = Console()

_STATUS_STYLE = {
    "running": "green",
    "completed": "cyan",
    "stopped": "yellow",
    "restart_exhausted": "red",
}


def _base_url(config_path: str | None, url: str | None) -> str:
    if url:
        return url.rstrip("/")
    config = load_config(config_path)
    return f"http://{config.server.host}:{config.server.port}"


def _call(
    method: str,
    config_path: str | None,
    url: str | None,
    path: str,
    payload: dict[str, Any] | None = None,
) -> Any:
    """Send one request to the server; print the error and exit on failure."""
    base = _base_url(config_path, url)
    try:
        resp = httpx.request(method, f"{base}{path}", json=payload, timeout=30.0)
    except httpx.HTTPError as e:
        console.print(f"[red]Cannot reach herder server at {base}: {e}[/red]")
        raise typer.Exit(1) from e

    if resp.status_code >= 400:
        try:
            detail = resp.json().get("detail", resp.text)
        except ValueError:
            detail = resp.text
        console.print(f"[red]Error ({resp.status_code}): {detail}[/red]")
        raise typer.Exit(1)

    return resp.json()


def _status(value: str) -> str:
    style = _STATUS_STYLE.get(value, "white")
    return f"[{style}]{value}[/{style}]"


def _print_job(job: dict[str, Any]) -> None:
    console.print(f"[bold cyan]{job['job_id']}[/bold cyan]  {_status(job['status'])}")
    console.print(f"Resource:          {job['resource_id']}")
    console.print(
        f"Progress:          {job['progress']} / {job['goal_value'] - job['start_value']}"
        f"  (current {job['current_value']}, goal {job['goal_value']})"
    )
    console.print(f"Restart attempts:  {job['restart_attempts']}")
    console.print(f"Requests:          {job['total_success']} ok / {job['total_requests']} sent")
    if job.get("degraded"):
        console.print("[yellow]Degraded: no worker accepted the last start[/yellow]")
    if job.get("last_error"):
        console.print(f"Last error:        {job['last_error']}")
    console.print(f"Created:           {job['created_at']}")
    console.print(f"Finished:          {job['completed_at'] or '-'}")

    if job["workers"]:
        table = Table(title="Workers")
        table.add_column("Worker", style="cyan")
        table.add_column("Status", style="white")
        table.add_column("Success", style="green")
        table.add_column("Requests", style="blue")
        for worker in job["workers"]:
            table.add_row(
                worker["worker_id"],
                worker["status"],
                str(worker["success"]),
                str(worker["requests"]),
            )
        console.print(table)


def fleet_status_command(config_path: str | None = None, url: str | None = None) -> None:
    """Show every worker's observed state."""
    data = _call("GET", config_path, url, "/api/fleet")
    workers = data["workers"]

    if not workers:
        console.print("[yellow]No workers contacted yet[/yellow]")
    else:
        table = Table(title="Fleet Status")
        table.add_column("Worker", style="cyan")
        table.add_column("Endpoint", style="white")
        table.add_column("State", style="white")
        table.add_column("Restarts", style="magenta")
        table.add_column("Last Seen", style="yellow")
        table.add_column("Last Error", style="red")

        for worker in workers:
            if worker["critical"]:
                state = "[red]critical[/red]"
            elif worker["running"]:
                state = "[green]running[/green]"
            elif worker["running"] is None:
                state = "[yellow]unknown[/yellow]"
            else:
                state = "[yellow]idle[/yellow]"
            table.add_row(
                worker["id"],
                worker["endpoint"],
                state,
                str(worker["restart_count"]),
                worker["last_seen"] or "never",
                worker["last_error"] or "",
            )
        console.print(table)

    critical = sum(1 for w in workers if w["critical"])
    flag = "enabled" if data["reconciliation_enabled"] else "[yellow]paused[/yellow]"
    console.print(f"\n[bold]Summary:[/bold] {len(workers)} workers, {critical} critical")
    console.print(f"Reconciliation: {flag}")


def set_reconciliation_command(
    enabled: bool, config_path: str | None = None, url: str | None = None
) -> None:
    """Pause or resume fleet reconciliation."""
    data = _call("PUT", config_path, url, "/api/fleet/reconciliation", {"enabled": enabled})
    state = "enabled" if data["enabled"] else "paused"
    console.print(f"[green]✓[/green] Fleet reconciliation {state}")


def set_worker_enabled_command(
    worker_id: str, enabled: bool, config_path: str | None = None, url: str | None = None
) -> None:
    """Enable or disable one worker."""
    data = _call(
        "PUT", config_path, url, f"/api/fleet/workers/{worker_id}", {"enabled": enabled}
    )
    state = "enabled" if data["enabled"] else "disabled"
    console.print(f"[green]✓[/green] Worker {worker_id} {state}")


def worker_remove_command(
    worker_id: str, config_path: str | None = None, url: str | None = None
) -> None:
    """Remove one worker from the directory."""
    _call("DELETE", config_path, url, f"/api/fleet/workers/{worker_id}")
    console.print(f"[green]✓[/green] Worker {worker_id} removed")


def job_create_command(
    resource_id: str,
    delta: int,
    workers: list[str] | None = None,
    config_path: str | None = None,
    url: str | None = None,
) -> None:
    """Create a job."""
    payload: dict[str, Any] = {"resource_id": resource_id, "delta": delta}
    if workers:
        payload["workers"] = workers
    job = _call("POST", config_path, url, "/api/jobs", payload)
    console.print(f"[green]✓[/green] Job created: [bold]{job['job_id']}[/bold]")
    console.print(f"  {job['start_value']} -> {job['goal_value']} on {len(job['workers'])} workers")


def job_show_command(job_id: str, config_path: str | None = None, url: str | None = None) -> None:
    """Show one job."""
    _print_job(_call("GET", config_path, url, f"/api/jobs/{job_id}"))


def job_list_command(config_path: str | None = None, url: str | None = None) -> None:
    """List all jobs."""
    jobs = _call("GET", config_path, url, "/api/jobs")
    if not jobs:
        console.print("[yellow]No jobs[/yellow]")
        return

    table = Table(title="Jobs")
    table.add_column("Job", style="cyan")
    table.add_column("Resource", style="white")
    table.add_column("Status", style="white")
    table.add_column("Progress", style="green")
    table.add_column("Restarts", style="magenta")

    for job in jobs:
        table.add_row(
            job["job_id"],
            job["resource_id"],
            _status(job["status"]),
            f"{job['progress']}/{job['goal_value'] - job['start_value']}",
            str(job["restart_attempts"]),
        )
    console.print(table)


def job_stop_command(job_id: str, config_path: str | None = None, url: str | None = None) -> None:
    """Stop one job."""
    job = _call("POST", config_path, url, f"/api/jobs/{job_id}/stop")
    console.print(f"Job [bold]{job['job_id']}[/bold] is {_status(job['status'])}")


def job_stop_all_command(config_path: str | None = None, url: str | None = None) -> None:
    """Stop every running job."""
    jobs = _call("POST", config_path, url, "/api/jobs/stop-all")
    console.print(f"[green]✓[/green] Stopped {len(jobs)} jobs")


def key_show_command(config_path: str | None = None, url: str | None = None) -> None:
    """Show the registration key."""
    data = _call("GET", config_path, url, "/api/registration-key")
    console.print(f"Registration key: [bold]{data['key']}[/bold]")


def key_rotate_command(
    new_key: str | None = None, config_path: str | None = None, url: str | None = None
) -> None:
    """Replace the registration key."""
    data = _call("POST", config_path, url, "/api/registration-key", {"new_key": new_key})
    console.print(f"[green]✓[/green] New registration key: [bold]{data['key']}[/bold]")
