"""
RunPod API client.

REST (``/v1/pods``, ``/v1/networkvolumes``) covers pod creation, status and
network volumes; GraphQL covers stop/terminate, runtime telemetry and GPU
availability. Every call authenticates with the account API key as a bearer
token.
"""
import logging
from typing import Any, Dict, List, Optional

import requests

from arion_flow.config import Settings

logger = logging.getLogger(__name__)

POD_STOP_MUTATION = """
  mutation podStop($input: PodStopInput!) {
    podStop(input: $input) {
      id
      desiredStatus
    }
  }
"""

POD_TERMINATE_MUTATION = """
  mutation podTerminate($input: PodTerminateInput!) {
    podTerminate(input: $input)
  }
"""

POD_TELEMETRY_QUERY = """
  query Pod($podId: String!) {
    pod(input: { podId: $podId }) {
      id
      name
      gpuCount
      imageName
      desiredStatus
      runtime {
        uptimeInSeconds
        gpus {
          id
          gpuUtilPercent
          memoryUtilPercent
        }
        container {
          cpuPercent
          memoryPercent
        }
        ports {
          ip
          isIpPublic
          privatePort
          publicPort
          type
        }
      }
    }
  }
"""

GPU_AVAILABILITY_QUERY = """
  query AvailableGpuTypes($dataCenterId: String!) {
    availableGpuTypes(input: { dataCenterId: $dataCenterId }) {
      id
      displayName
      memoryInGb
      stockStatus
    }
  }
"""


class RunPodError(Exception):
    """Provider call failed: non-2xx response, GraphQL errors or a transport error."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class RunPodConfigError(RunPodError):
    pass


class RunPodClient:
    def __init__(
        self,
        api_key: Optional[str],
        rest_url: str = "https://rest.runpod.io/v1",
        graphql_url: str = "https://api.runpod.io/graphql",
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key
        self.rest_url = rest_url.rstrip("/")
        self.graphql_url = graphql_url
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_settings(cls, settings: Settings) -> "RunPodClient":
        return cls(
            api_key=settings.runpod_api_key,
            rest_url=settings.runpod_rest_url,
            graphql_url=settings.runpod_graphql_url,
            timeout=settings.runpod_timeout_seconds,
        )

    def close(self) -> None:
        self.session.close()

    def _headers(self) -> Dict[str, str]:
        if not self.api_key:
            raise RunPodConfigError("Missing RUNPOD_API_KEY")
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    # REST

    def _rest(self, method: str, path: str, payload: Optional[dict] = None) -> requests.Response:
        url = f"{self.rest_url}{path}"
        try:
            return self.session.request(
                method, url, headers=self._headers(), json=payload, timeout=self.timeout
            )
        except requests.RequestException as e:
            raise RunPodError(f"RunPod request failed: {str(e)}") from e

    def _rest_json(self, method: str, path: str, payload: Optional[dict] = None, action: str = "request") -> Dict[str, Any]:
        response = self._rest(method, path, payload)
        if not response.ok:
            raise RunPodError(f"{action} failed: {response.text}", status_code=response.status_code)
        try:
            return response.json()
        except ValueError as e:
            raise RunPodError(f"{action} returned invalid JSON: {response.text}", status_code=response.status_code) from e

    def create_network_volume(self, name: str, size_gb: int, datacenter_id: str) -> Dict[str, Any]:
        volume = self._rest_json(
            "POST",
            "/networkvolumes",
            {"name": name, "size": size_gb, "dataCenterId": datacenter_id},
            action="Volume creation",
        )
        if not volume.get("id"):
            raise RunPodError(f"No volume id in response: {volume}")
        logger.info(f"Created network volume {volume['id']} ({size_gb}GB in {datacenter_id})")
        return volume

    def get_network_volume(self, volume_id: str) -> Dict[str, Any]:
        return self._rest_json("GET", f"/networkvolumes/{volume_id}", action="Volume lookup")

    def delete_network_volume(self, volume_id: str) -> int:
        """Delete a network volume and return the provider's HTTP status (200/204 on success)."""
        response = self._rest("DELETE", f"/networkvolumes/{volume_id}")
        if response.status_code in (200, 204):
            logger.info(f"Deleted network volume {volume_id}")
        else:
            logger.warning(f"Deleting network volume {volume_id} returned {response.status_code}: {response.text}")
        return response.status_code

    def create_pod(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        pod = self._rest_json("POST", "/pods", payload, action="Pod creation")
        if not pod.get("id"):
            raise RunPodError(f"No pod id in response: {pod}")
        logger.info(f"Created pod {pod['id']}")
        return pod

    def get_pod(self, pod_id: str) -> Dict[str, Any]:
        return self._rest_json("GET", f"/pods/{pod_id}", action="Pod lookup")

    # GraphQL

    def graphql(self, query: str, variables: Dict[str, Any]) -> Dict[str, Any]:
        """Run a GraphQL operation and return its ``data``."""
        try:
            response = self.session.post(
                self.graphql_url,
                headers=self._headers(),
                json={"query": query, "variables": variables},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise RunPodError(f"RunPod request failed: {str(e)}") from e
        try:
            body = response.json()
        except ValueError:
            body = {}
        errors = body.get("errors") if isinstance(body, dict) else None
        if not response.ok or errors:
            messages: List[str] = [e.get("message") for e in (errors or []) if isinstance(e, dict) and e.get("message")]
            message = "; ".join(messages) or f"GraphQL error (status {response.status_code})"
            raise RunPodError(message, status_code=response.status_code)
        return body.get("data") or {}

    def stop_pod(self, pod_id: str) -> Any:
        data = self.graphql(POD_STOP_MUTATION, {"input": {"podId": pod_id}})
        return data.get("podStop")

    def terminate_pod(self, pod_id: str) -> Any:
        data = self.graphql(POD_TERMINATE_MUTATION, {"input": {"podId": pod_id}})
        return data.get("podTerminate")

    def get_pod_telemetry(self, pod_id: str) -> Optional[Dict[str, Any]]:
        data = self.graphql(POD_TELEMETRY_QUERY, {"podId": pod_id})
        return data.get("pod")

    def available_gpu_types(self, datacenter_id: str) -> Dict[str, Any]:
        return self.graphql(GPU_AVAILABILITY_QUERY, {"dataCenterId": datacenter_id})
