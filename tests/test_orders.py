from tests.conftest import ORG_ID, OTHER_ORG_ID, add_order, auth_header

ORDER_BODY = {"name": "render-box", "datacenter_id": "EU-RO-1", "storage_gb": 50, "gpu_type": "RTX 4090"}


def test_provision_success(client, supabase, runpod):
    response = client.post("/api/orders", json=ORDER_BODY, headers=auth_header("user-token"))

    assert response.status_code == 200
    body = response.json()
    assert body["ok"] is True
    assert body["podId"] == "pod-1"
    assert body["volumeId"] == "vol-1"
    assert body["workspaceUrl"] == "https://pod-1-8080.proxy.runpod.net/"
    assert body["podReady"] is True

    order = supabase.rows("orders")[0]
    assert order["id"] == body["orderId"]
    assert order["status"] == "running"
    assert order["organization_id"] == ORG_ID
    assert order["pod_id"] == "pod-1"

    payload = runpod.created_pods[0]
    assert payload["gpuTypeIds"] == ["NVIDIA GeForce RTX 4090"]
    assert payload["networkVolumeId"] == "vol-1"
    assert payload["dataCenterIds"] == ["EU-RO-1"]
    assert payload["containerRegistryAuthId"] == "registry-auth"
    assert runpod.created_volumes[0]["name"] == "render-box-volume"


def test_unsupported_datacenter_creates_nothing(client, supabase, runpod):
    body = {**ORDER_BODY, "datacenter_id": "AP-JP-1"}
    response = client.post("/api/orders", json=body, headers=auth_header("user-token"))

    assert response.status_code == 400
    assert response.json() == {"ok": False, "error": "Region AP-JP-1 not supported."}
    assert supabase.rows("orders") == []
    assert runpod.created_volumes == []


def test_invalid_body_is_400(client, supabase):
    response = client.post("/api/orders", json={**ORDER_BODY, "storage_gb": 0}, headers=auth_header("user-token"))
    assert response.status_code == 400
    assert response.json()["ok"] is False
    assert supabase.rows("orders") == []


def test_missing_runpod_credentials(client, test_settings, supabase):
    test_settings.runpod_api_key = None
    response = client.post("/api/orders", json=ORDER_BODY, headers=auth_header("user-token"))
    assert response.status_code == 500
    assert response.json()["error"] == "Missing required RUNPOD environment variables."
    assert supabase.rows("orders") == []


def test_volume_failure_marks_order_failed(client, supabase, runpod):
    runpod.volume_error = "quota exceeded"
    response = client.post("/api/orders", json=ORDER_BODY, headers=auth_header("user-token"))

    assert response.status_code == 502
    order = supabase.rows("orders")[0]
    assert order["status"] == "failed"
    assert "quota exceeded" in order["failure_reason"]
    assert runpod.created_pods == []


def test_pod_failure_deletes_volume_and_fails_order(client, supabase, runpod):
    runpod.pod_error = "no capacity"
    response = client.post("/api/orders", json=ORDER_BODY, headers=auth_header("user-token"))

    assert response.status_code == 502
    assert response.json()["ok"] is False
    assert runpod.deleted_volumes == ["vol-1"]
    order = supabase.rows("orders")[0]
    assert order["status"] == "failed"
    assert order["failure_reason"] == "Pod creation failed: no capacity"


def test_pod_never_running_unwinds_everything(client, supabase, runpod):
    runpod.pod_statuses = ["CREATED"]
    response = client.post("/api/orders", json=ORDER_BODY, headers=auth_header("user-token"))

    assert response.status_code == 500
    assert response.json() == {"ok": False, "error": "Pod failed to start"}
    assert runpod.pod_checks == 12
    assert runpod.terminated == ["pod-1"]
    assert runpod.deleted_volumes == ["vol-1"]
    assert supabase.rows("orders")[0]["status"] == "failed"


def test_pod_running_after_a_few_polls(client, supabase, runpod):
    runpod.pod_statuses = ["CREATED", "CREATED", "RUNNING"]
    response = client.post("/api/orders", json=ORDER_BODY, headers=auth_header("user-token"))

    assert response.status_code == 200
    assert runpod.pod_checks == 3
    assert runpod.deleted_volumes == []


def test_order_requires_authentication(client, supabase):
    response = client.post("/api/orders", json=ORDER_BODY)
    assert response.status_code == 401
    assert supabase.rows("orders") == []


def test_pending_account_cannot_order(client, supabase):
    response = client.post("/api/orders", json=ORDER_BODY, headers=auth_header("pending-token"))
    assert response.status_code == 403
    assert response.json()["error"] == "Account pending approval"


def test_order_into_foreign_organization_is_forbidden(client, supabase, runpod):
    body = {**ORDER_BODY, "organization_id": OTHER_ORG_ID}
    response = client.post("/api/orders", json=body, headers=auth_header("user-token"))
    assert response.status_code == 403
    assert runpod.created_volumes == []


def test_list_orders_scoped_to_organization(client, supabase):
    mine = add_order(supabase, user_id="u-user")
    add_order(supabase, user_id="u-other", organization_id=OTHER_ORG_ID)
    teammate = add_order(supabase, user_id="u-orgadmin", pod_id=None, status="deleted")

    response = client.get("/api/orders", headers=auth_header("user-token"))
    ids = {o["id"] for o in response.json()["orders"]}
    assert ids == {mine["id"], teammate["id"]}

    response = client.get("/api/orders?active=true", headers=auth_header("user-token"))
    assert [o["id"] for o in response.json()["orders"]] == [mine["id"]]

    response = client.get("/api/orders", headers=auth_header("admin-token"))
    assert len(response.json()["orders"]) == 3


def test_get_order_of_other_organization_is_404(client, supabase):
    order = add_order(supabase, user_id="u-other", organization_id=OTHER_ORG_ID)
    response = client.get(f"/api/orders/{order['id']}", headers=auth_header("user-token"))
    assert response.status_code == 404


def test_stop_leaves_order_untouched(client, supabase, runpod):
    order = add_order(supabase)
    response = client.post(f"/api/orders/{order['id']}/stop", headers=auth_header("user-token"))

    assert response.status_code == 200
    assert response.json()["ok"] is True
    assert runpod.stopped == ["pod-9"]
    assert supabase.rows("orders")[0]["status"] == "running"


def test_stop_without_pod_is_404(client, supabase, runpod):
    order = add_order(supabase, pod_id=None)
    response = client.post(f"/api/orders/{order['id']}/stop", headers=auth_header("user-token"))
    assert response.status_code == 404
    assert runpod.stopped == []


def test_stop_failure_is_502(client, supabase, runpod):
    order = add_order(supabase)
    runpod.stop_error = "pod locked"
    response = client.post(f"/api/orders/{order['id']}/stop", headers=auth_header("user-token"))
    assert response.status_code == 502
    assert response.json()["error"] == "Failed to stop pod"


def test_terminate_with_workspace_deletion(client, supabase, runpod):
    order = add_order(supabase)
    runpod.delete_volume_status = 204
    response = client.post(
        f"/api/orders/{order['id']}/terminate",
        json={"deleteWorkspace": True},
        headers=auth_header("user-token"),
    )

    assert response.status_code == 200
    assert response.json()["deletedWorkspace"] is True
    row = supabase.rows("orders")[0]
    assert row["status"] == "deleted"
    assert row["pod_id"] is None
    assert row["volume_id"] is None


def test_terminate_volume_deletion_accepts_200(client, supabase, runpod):
    order = add_order(supabase)
    runpod.delete_volume_status = 200
    response = client.post(
        f"/api/orders/{order['id']}/terminate",
        json={"deleteWorkspace": True},
        headers=auth_header("user-token"),
    )

    assert response.status_code == 200
    assert response.json()["deletedWorkspace"] is True
    assert runpod.deleted_volumes == ["vol-9"]
    assert supabase.rows("orders")[0]["volume_id"] is None


def test_terminate_keeps_volume_when_deletion_fails(client, supabase, runpod):
    order = add_order(supabase)
    runpod.delete_volume_status = 500
    response = client.post(
        f"/api/orders/{order['id']}/terminate",
        json={"deleteWorkspace": True},
        headers=auth_header("user-token"),
    )

    assert response.json()["deletedWorkspace"] is False
    row = supabase.rows("orders")[0]
    assert row["status"] == "deleted"
    assert row["pod_id"] is None
    assert row["volume_id"] == "vol-9"


def test_terminate_without_body_keeps_volume(client, supabase, runpod):
    order = add_order(supabase)
    response = client.post(f"/api/orders/{order['id']}/terminate", headers=auth_header("user-token"))

    assert response.status_code == 200
    assert runpod.terminated == ["pod-9"]
    assert runpod.deleted_volumes == []
    assert supabase.rows("orders")[0]["volume_id"] == "vol-9"


def test_terminate_failure_is_502(client, supabase, runpod):
    order = add_order(supabase)
    runpod.terminate_error = "pod not found; try again"
    response = client.post(f"/api/orders/{order['id']}/terminate", headers=auth_header("user-token"))
    assert response.status_code == 502
    assert response.json()["error"] == "pod not found; try again"
    assert supabase.rows("orders")[0]["status"] == "running"


def test_telemetry_is_written_back(client, supabase, runpod):
    order = add_order(supabase)
    runpod.telemetry = {
        "id": "pod-9",
        "name": "render-box",
        "gpuCount": 1,
        "imageName": "ghcr.io/andrewabbey-art/arion_flow:0.5",
        "desiredStatus": "RUNNING",
        "runtime": {
            "uptimeInSeconds": 3720,
            "gpus": [{"id": "gpu-0", "gpuUtilPercent": 40, "memoryUtilPercent": 12}],
            "container": {"cpuPercent": 5, "memoryPercent": 30},
            "ports": [{"ip": "1.2.3.4", "isIpPublic": True, "privatePort": 8080, "publicPort": 443, "type": "http"}],
        },
    }
    response = client.get(f"/api/orders/{order['id']}/telemetry", headers=auth_header("user-token"))

    assert response.status_code == 200
    telemetry = response.json()["telemetry"]
    assert telemetry["runtime_status"] == "RUNNING"
    assert telemetry["uptime_seconds"] == 3720
    assert telemetry["volume_size_gb"] == 50
    assert telemetry["gpu_metrics"][0]["gpu_util_percent"] == 40
    row = supabase.rows("orders")[0]
    assert row["runtime_status"] == "RUNNING"
    assert row["uptime_seconds"] == 3720
    assert row["last_checked"]


def test_telemetry_for_missing_pod(client, supabase, runpod):
    order = add_order(supabase)
    runpod.telemetry = None
    response = client.get(f"/api/orders/{order['id']}/telemetry", headers=auth_header("user-token"))
    assert response.status_code == 404
    assert response.json()["error"] == "Pod not found"


def test_telemetry_upstream_error(client, supabase, runpod):
    order = add_order(supabase)
    runpod.telemetry_error = "GraphQL error (status 500)"
    response = client.get(f"/api/orders/{order['id']}/telemetry", headers=auth_header("user-token"))
    assert response.status_code == 502
