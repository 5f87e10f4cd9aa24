"""Tests for CLI commands that talk to the control server."""

import json

import httpx
import pytest
import respx
import typer
from httpx import Response

from herder.cli import control_cmd


def _job(**overrides):
    job = {
        "job_id": "video123-1700000000000-abc123",
        "resource_id": "video123",
        "status": "running",
        "is_running": True,
        "start_value": 1000,
        "goal_value": 6000,
        "current_value": 2500,
        "progress": 1500,
        "remaining": 3500,
        "total_success": 40,
        "total_requests": 50,
        "restart_attempts": 1,
        "degraded": False,
        "metric_misses": 0,
        "last_error": None,
        "created_at": "2026-01-01T00:00:00",
        "completed_at": None,
        "workers": [
            {
                "worker_id": "w1",
                "endpoint": "http://w1",
                "status": "running",
                "success": 40,
                "requests": 50,
                "last_error": None,
            }
        ],
    }
    job.update(overrides)
    return job


@respx.mock
def test_job_create_posts_payload(server_url):
    route = respx.post(f"{server_url}/api/jobs").mock(return_value=Response(201, json=_job()))

    control_cmd.job_create_command("video123", 5000, ["w1"], url=server_url)

    body = json.loads(route.calls.last.request.content)
    assert body == {"resource_id": "video123", "delta": 5000, "workers": ["w1"]}


@respx.mock
def test_job_create_omits_workers_by_default(server_url):
    route = respx.post(f"{server_url}/api/jobs").mock(return_value=Response(201, json=_job()))

    control_cmd.job_create_command("video123", 5000, url=server_url)

    assert "workers" not in json.loads(route.calls.last.request.content)


@respx.mock
def test_error_response_exits(server_url):
    respx.post(f"{server_url}/api/jobs").mock(
        return_value=Response(400, json={"detail": "goal must exceed the current value"})
    )

    with pytest.raises(typer.Exit) as exc_info:
        control_cmd.job_create_command("video123", 0, url=server_url)

    assert exc_info.value.exit_code == 1


@respx.mock
def test_unreachable_server_exits(server_url):
    respx.get(f"{server_url}/api/jobs").mock(side_effect=httpx.ConnectError("refused"))

    with pytest.raises(typer.Exit):
        control_cmd.job_list_command(url=server_url)


@respx.mock
def test_job_show_and_list(server_url):
    respx.get(f"{server_url}/api/jobs/video123-1700000000000-abc123").mock(
        return_value=Response(200, json=_job(degraded=True, last_error="no worker accepted"))
    )
    respx.get(f"{server_url}/api/jobs").mock(return_value=Response(200, json=[_job()]))

    control_cmd.job_show_command("video123-1700000000000-abc123", url=server_url)
    control_cmd.job_list_command(url=server_url)


@respx.mock
def test_job_list_empty(server_url):
    respx.get(f"{server_url}/api/jobs").mock(return_value=Response(200, json=[]))

    control_cmd.job_list_command(url=server_url)


@respx.mock
def test_job_stop_and_stop_all(server_url):
    stop = respx.post(f"{server_url}/api/jobs/abc/stop").mock(
        return_value=Response(200, json=_job(job_id="abc", status="stopped"))
    )
    stop_all = respx.post(f"{server_url}/api/jobs/stop-all").mock(
        return_value=Response(200, json=[_job(status="stopped")])
    )

    control_cmd.job_stop_command("abc", url=server_url)
    control_cmd.job_stop_all_command(url=server_url)

    assert stop.called
    assert stop_all.called


@respx.mock
def test_fleet_status(server_url):
    respx.get(f"{server_url}/api/fleet").mock(
        return_value=Response(
            200,
            json={
                "reconciliation_enabled": False,
                "workers": [
                    {
                        "id": "w1",
                        "endpoint": "http://w1",
                        "enabled": True,
                        "last_seen": None,
                        "last_checked": "2026-01-01T00:00:00",
                        "running": None,
                        "restart_count": 3,
                        "critical": True,
                        "last_error": "connection refused",
                    }
                ],
            },
        )
    )

    control_cmd.fleet_status_command(url=server_url)


@respx.mock
def test_set_reconciliation(server_url):
    route = respx.put(f"{server_url}/api/fleet/reconciliation").mock(
        return_value=Response(200, json={"enabled": False})
    )

    control_cmd.set_reconciliation_command(False, url=server_url)

    assert json.loads(route.calls.last.request.content) == {"enabled": False}


@respx.mock
def test_key_show_and_rotate(server_url):
    respx.get(f"{server_url}/api/registration-key").mock(
        return_value=Response(200, json={"success": True, "key": "ABCDEF123456"})
    )
    rotate = respx.post(f"{server_url}/api/registration-key").mock(
        return_value=Response(200, json={"success": True, "key": "NEWKEY000001"})
    )

    control_cmd.key_show_command(url=server_url)
    control_cmd.key_rotate_command("NEWKEY000001", url=server_url)

    assert json.loads(rotate.calls.last.request.content) == {"new_key": "NEWKEY000001"}


@respx.mock
def test_base_url_from_config(tmp_config_path):
    tmp_config_path.write_text("server:\n  host: 10.1.2.3\n  port: 9100\n")
    route = respx.get("http://10.1.2.3:9100/api/jobs").mock(return_value=Response(200, json=[]))

    control_cmd.job_list_command(config_path=str(tmp_config_path))

    assert route.called


@respx.mock
def test_worker_enable_and_disable(server_url):
    route = respx.put(f"{server_url}/api/fleet/workers/w1").mock(
        side_effect=lambda request: Response(
            200, json={"id": "w1", **json.loads(request.content)}
        )
    )

    control_cmd.set_worker_enabled_command("w1", False, url=server_url)
    assert json.loads(route.calls.last.request.content) == {"enabled": False}

    control_cmd.set_worker_enabled_command("w1", True, url=server_url)
    assert json.loads(route.calls.last.request.content) == {"enabled": True}


@respx.mock
def test_worker_disable_unknown_exits(server_url):
    respx.put(f"{server_url}/api/fleet/workers/w9").mock(
        return_value=Response(404, json={"detail": "worker 'w9' not found"})
    )

    with pytest.raises(typer.Exit):
        control_cmd.set_worker_enabled_command("w9", False, url=server_url)


@respx.mock
def test_worker_remove(server_url):
    route = respx.delete(f"{server_url}/api/fleet/workers/w4").mock(
        return_value=Response(200, json={"id": "w4", "removed": True})
    )

    control_cmd.worker_remove_command("w4", url=server_url)

    assert route.called
