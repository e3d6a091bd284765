from unittest.mock import MagicMock

import pytest
import requests

from arion_flow.modules.runpod.client import (
    POD_STOP_MUTATION,
    RunPodClient,
    RunPodConfigError,
    RunPodError,
)


def make_response(status_code=200, json_data=None, text=""):
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.text = text
    if json_data is None:
        response.json.side_effect = ValueError("no json")
    else:
        response.json.return_value = json_data
    return response


@pytest.fixture
def session():
    return MagicMock(spec=requests.Session)


@pytest.fixture
def runpod_client(session):
    return RunPodClient(api_key="key-123", rest_url="https://rest.test/v1/", graphql_url="https://gql.test", session=session)


def test_create_network_volume_posts_payload(runpod_client, session):
    session.request.return_value = make_response(200, {"id": "vol-1", "size": 50})

    volume = runpod_client.create_network_volume("box-volume", 50, "EU-RO-1")

    assert volume["id"] == "vol-1"
    method, url = session.request.call_args.args
    kwargs = session.request.call_args.kwargs
    assert method == "POST"
    assert url == "https://rest.test/v1/networkvolumes"
    assert kwargs["json"] == {"name": "box-volume", "size": 50, "dataCenterId": "EU-RO-1"}
    assert kwargs["headers"]["Authorization"] == "Bearer key-123"


def test_create_network_volume_error_carries_body(runpod_client, session):
    session.request.return_value = make_response(400, text="size too large")

    with pytest.raises(RunPodError) as exc_info:
        runpod_client.create_network_volume("box-volume", 5000, "EU-RO-1")
    assert exc_info.value.status_code == 400
    assert "size too large" in exc_info.value.message


def test_create_pod_requires_id(runpod_client, session):
    session.request.return_value = make_response(200, {"desiredStatus": "RUNNING"})
    with pytest.raises(RunPodError):
        runpod_client.create_pod({"name": "box"})


def test_delete_network_volume_returns_status(runpod_client, session):
    session.request.return_value = make_response(204)
    assert runpod_client.delete_network_volume("vol-1") == 204

    session.request.return_value = make_response(404, text="not found")
    assert runpod_client.delete_network_volume("vol-1") == 404


def test_transport_error_becomes_runpod_error(runpod_client, session):
    session.request.side_effect = requests.ConnectionError("connection refused")
    with pytest.raises(RunPodError):
        runpod_client.get_pod("pod-1")


def test_missing_api_key_is_config_error(session):
    client = RunPodClient(api_key=None, session=session)
    with pytest.raises(RunPodConfigError):
        client.get_pod("pod-1")
    session.request.assert_not_called()


def test_stop_pod_sends_mutation(runpod_client, session):
    session.post.return_value = make_response(200, {"data": {"podStop": {"id": "pod-1", "desiredStatus": "EXITED"}}})

    result = runpod_client.stop_pod("pod-1")

    assert result == {"id": "pod-1", "desiredStatus": "EXITED"}
    body = session.post.call_args.kwargs["json"]
    assert body["query"] == POD_STOP_MUTATION
    assert body["variables"] == {"input": {"podId": "pod-1"}}


def test_graphql_errors_are_joined(runpod_client, session):
    session.post.return_value = make_response(200, {"errors": [{"message": "pod not found"}, {"message": "try again"}]})

    with pytest.raises(RunPodError) as exc_info:
        runpod_client.terminate_pod("pod-1")
    assert exc_info.value.message == "pod not found; try again"


def test_graphql_http_error_without_messages(runpod_client, session):
    session.post.return_value = make_response(503, text="unavailable")

    with pytest.raises(RunPodError) as exc_info:
        runpod_client.get_pod_telemetry("pod-1")
    assert exc_info.value.message == "GraphQL error (status 503)"
    assert exc_info.value.status_code == 503


def test_telemetry_returns_none_for_missing_pod(runpod_client, session):
    session.post.return_value = make_response(200, {"data": {"pod": None}})
    assert runpod_client.get_pod_telemetry("pod-1") is None

