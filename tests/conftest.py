"""
Shared fixtures: an in-memory stand-in for the Supabase client, a scripted
RunPod client and an application wired to both.
"""

import copy
import uuid
from datetime import datetime, timezone
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

from arion_flow.config import Settings
from arion_flow.database.supabase_client import SupabaseClients
from arion_flow.main import create_app
from arion_flow.modules.auth.service import clear_auth_cache
from arion_flow.modules.runpod.client import RunPodError


class FakeResult:
    def __init__(self, data):
        self.data = data


class FakeQuery:
    """Chainable query builder over FakeSupabase.tables"""

    def __init__(self, db: "FakeSupabase", table: str):
        self.db = db
        self.table = table
        self.op: Optional[str] = None
        self.columns = "*"
        self.payload: Any = None
        self.on_conflict: Optional[str] = None
        self.filters: List = []
        self._order = None
        self._limit = None
        self._single: Optional[str] = None

    def select(self, columns: str = "*", **kwargs):
        if self.op is None:
            self.op = "select"
        self.columns = columns
        return self

    def insert(self, payload):
        self.op, self.payload = "insert", payload
        return self

    def update(self, payload):
        self.op, self.payload = "update", payload
        return self

    def upsert(self, payload, on_conflict: str = "id", **kwargs):
        self.op, self.payload, self.on_conflict = "upsert", payload, on_conflict
        return self

    def delete(self):
        self.op = "delete"
        return self

    def eq(self, column, value):
        self.filters.append(lambda row: row.get(column) == value)
        return self

    def in_(self, column, values):
        values = list(values)
        self.filters.append(lambda row: row.get(column) in values)
        return self

    def order(self, column, desc: bool = False):
        self._order = (column, desc)
        return self

    def limit(self, count):
        self._limit = count
        return self

    def single(self):
        self._single = "single"
        return self

    def maybe_single(self):
        self._single = "maybe"
        return self

    def _matches(self, row) -> bool:
        return all(f(row) for f in self.filters)

    def _with_joins(self, row):
        row = copy.deepcopy(row)
        if self.table == "organization_users" and "organizations(" in self.columns:
            org = next((o for o in self.db.tables.get("organizations", []) if o["id"] == row["organization_id"]), None)
            row["organizations"] = {"name": org["name"]} if org else None
        return row

    def _new_row(self, row):
        row = dict(row)
        row.setdefault("id", str(uuid.uuid4()))
        row.setdefault("created_at", datetime.now(timezone.utc).isoformat())
        return row

    def execute(self):
        error = self.db.failures.get((self.table, self.op))
        if error:
            raise Exception(error)
        self.db.calls.append((self.table, self.op, copy.deepcopy(self.payload)))
        rows = self.db.tables.setdefault(self.table, [])

        if self.op == "select":
            found = [self._with_joins(r) for r in rows if self._matches(r)]
            if self._order:
                column, desc = self._order
                found.sort(key=lambda r: str(r.get(column) or ""), reverse=desc)
            if self._limit is not None:
                found = found[:self._limit]
            if self._single:
                if not found and self._single == "single":
                    raise Exception("JSON object requested, multiple (or no) rows returned")
                return FakeResult(found[0] if found else None)
            return FakeResult(found)

        if self.op == "insert":
            payload = self.payload if isinstance(self.payload, list) else [self.payload]
            inserted = [self._new_row(p) for p in payload]
            rows.extend(inserted)
            return FakeResult(copy.deepcopy(inserted))

        if self.op == "upsert":
            existing = next((r for r in rows if r.get(self.on_conflict) == self.payload.get(self.on_conflict)), None)
            if existing:
                existing.update(self.payload)
                return FakeResult([copy.deepcopy(existing)])
            row = self._new_row(self.payload)
            rows.append(row)
            return FakeResult([copy.deepcopy(row)])

        if self.op == "update":
            updated = []
            for row in rows:
                if self._matches(row):
                    row.update(self.payload)
                    updated.append(copy.deepcopy(row))
            return FakeResult(updated)

        if self.op == "delete":
            removed = [r for r in rows if self._matches(r)]
            self.db.tables[self.table] = [r for r in rows if not self._matches(r)]
            return FakeResult(removed)

        raise AssertionError(f"unsupported operation {self.op}")


class FakeAuthAdmin:
    def __init__(self, db: "FakeSupabase"):
        self.db = db
        self.created: List[Dict] = []
        self.invited: List[Dict] = []
        self.deleted: List[str] = []
        self.signed_out: List[str] = []
        self.existing_emails = set()

    def _new_user(self, email: str):
        return SimpleNamespace(id=str(uuid.uuid4()), email=email)

    def create_user(self, attributes: Dict):
        if attributes["email"] in self.existing_emails:
            raise Exception("A user with this email address has already been registered")
        user = self._new_user(attributes["email"])
        self.created.append({"id": user.id, **attributes})
        return SimpleNamespace(user=user)

    def invite_user_by_email(self, email: str, options: Optional[Dict] = None):
        if email in self.existing_emails:
            raise Exception("A user with this email address has already been registered")
        user = self._new_user(email)
        self.invited.append({"id": user.id, "email": email, "options": options or {}})
        return SimpleNamespace(user=user)

    def delete_user(self, user_id: str):
        self.deleted.append(user_id)

    def sign_out(self, token: str):
        self.signed_out.append(token)


class FakeAuth:
    def __init__(self, db: "FakeSupabase"):
        self.tokens: Dict[str, SimpleNamespace] = {}
        self.passwords: Dict[str, tuple] = {}
        self.admin = FakeAuthAdmin(db)

    def add_user(self, token: str, user_id: str, email: str, password: str = "secret"):
        user = SimpleNamespace(id=user_id, email=email, user_metadata={}, app_metadata={})
        self.tokens[token] = user
        self.passwords[email] = (password, token, user)

    def get_user(self, jwt: str = None):
        if jwt not in self.tokens:
            raise Exception("invalid JWT")
        return SimpleNamespace(user=self.tokens[jwt])

    def sign_in_with_password(self, credentials: Dict):
        entry = self.passwords.get(credentials["email"])
        if not entry or entry[0] != credentials["password"]:
            raise Exception("Invalid login credentials")
        _, token, user = entry
        return SimpleNamespace(user=user, session=SimpleNamespace(access_token=token, refresh_token="refresh"))


class FakeFunctions:
    def __init__(self):
        self.invocations: List[tuple] = []
        self.error: Optional[str] = None
        self.response: Any = b'{"sent": true}'

    def invoke(self, function_name: str, invoke_options: Optional[Dict] = None):
        if self.error:
            raise Exception(self.error)
        self.invocations.append((function_name, invoke_options))
        return self.response


class FakeSupabase:
    def __init__(self):
        self.tables: Dict[str, List[Dict]] = {}
        self.failures: Dict[tuple, str] = {}
        self.calls: List[tuple] = []
        self.rpc_calls: List[tuple] = []
        self.auth = FakeAuth(self)
        self.functions = FakeFunctions()

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def rpc(self, name: str, params: Dict):
        self.rpc_calls.append((name, params))
        return SimpleNamespace(execute=lambda: FakeResult(None))

    def fail(self, table: str, op: str, message: str = "database unavailable"):
        self.failures[(table, op)] = message

    def rows(self, table: str) -> List[Dict]:
        return self.tables.get(table, [])


class FakeRunPod:
    """Scripted RunPod client; records every call that changes remote state."""

    def __init__(self):
        self.volume_error: Optional[str] = None
        self.pod_error: Optional[str] = None
        self.pod_statuses: List[Any] = ["RUNNING"]
        self.delete_volume_status = 200
        self.stop_error: Optional[str] = None
        self.terminate_error: Optional[str] = None
        self.telemetry: Optional[Dict] = None
        self.telemetry_error: Optional[str] = None
        self.volume_size = 50
        self.gpu_data: Dict = {}
        self.created_volumes: List[Dict] = []
        self.created_pods: List[Dict] = []
        self.deleted_volumes: List[str] = []
        self.terminated: List[str] = []
        self.stopped: List[str] = []
        self.pod_checks = 0

    def create_network_volume(self, name, size_gb, datacenter_id):
        if self.volume_error:
            raise RunPodError(self.volume_error, status_code=400)
        volume = {"id": f"vol-{len(self.created_volumes) + 1}", "name": name, "size": size_gb, "dataCenterId": datacenter_id}
        self.created_volumes.append(volume)
        return volume

    def get_network_volume(self, volume_id):
        return {"id": volume_id, "size": self.volume_size}

    def delete_network_volume(self, volume_id):
        self.deleted_volumes.append(volume_id)
        return self.delete_volume_status

    def create_pod(self, payload):
        if self.pod_error:
            raise RunPodError(self.pod_error, status_code=400)
        pod = {"id": f"pod-{len(self.created_pods) + 1}", **payload}
        self.created_pods.append(pod)
        return pod

    def get_pod(self, pod_id):
        index = min(self.pod_checks, len(self.pod_statuses) - 1)
        self.pod_checks += 1
        status = self.pod_statuses[index]
        if isinstance(status, Exception):
            raise status
        return {"id": pod_id, "desiredStatus": status}

    def stop_pod(self, pod_id):
        if self.stop_error:
            raise RunPodError(self.stop_error)
        self.stopped.append(pod_id)
        return {"id": pod_id, "desiredStatus": "EXITED"}

    def terminate_pod(self, pod_id):
        if self.terminate_error:
            raise RunPodError(self.terminate_error)
        self.terminated.append(pod_id)
        return None

    def get_pod_telemetry(self, pod_id):
        if self.telemetry_error:
            raise RunPodError(self.telemetry_error)
        return self.telemetry

    def available_gpu_types(self, datacenter_id):
        return self.gpu_data

    def close(self):
        pass


ORG_ID = "org-1"
OTHER_ORG_ID = "org-2"


@pytest.fixture(autouse=True)
def _reset_auth_cache():
    clear_auth_cache()
    yield
    clear_auth_cache()


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        supabase_url="http://supabase.test",
        supabase_key="anon-key",
        supabase_service_role_key="service-key",
        runpod_api_key="runpod-key",
        runpod_registry_auth_id="registry-auth",
        pod_ready_poll_attempts=12,
        pod_ready_poll_interval_seconds=0,
        environment="development",
    )


@pytest.fixture
def supabase() -> FakeSupabase:
    db = FakeSupabase()
    db.tables["organizations"] = [
        {"id": ORG_ID, "name": "Acme"},
        {"id": OTHER_ORG_ID, "name": "Globex"},
    ]
    db.tables["profiles"] = [
        {"id": "u-admin", "first_name": "Ada", "last_name": "Admin", "role": "arion_admin", "authorized": True},
        {"id": "u-orgadmin", "first_name": "Olga", "last_name": "Owner", "role": "org_admin", "authorized": True},
        {"id": "u-user", "first_name": "Uma", "last_name": "User", "role": "workspace_user", "authorized": True},
        {"id": "u-other", "first_name": "Otto", "last_name": "Other", "role": "workspace_user", "authorized": True},
        {"id": "u-pending", "first_name": "Pat", "last_name": "Pending", "role": "workspace_user", "authorized": False},
    ]
    db.tables["organization_users"] = [
        {"user_id": "u-orgadmin", "organization_id": ORG_ID, "role": "admin"},
        {"user_id": "u-user", "organization_id": ORG_ID, "role": "member"},
        {"user_id": "u-other", "organization_id": OTHER_ORG_ID, "role": "member"},
        {"user_id": "u-pending", "organization_id": ORG_ID, "role": "member"},
    ]
    db.tables["orders"] = []
    db.auth.add_user("admin-token", "u-admin", "ada@arion.example.com")
    db.auth.add_user("orgadmin-token", "u-orgadmin", "olga@acme.example.com")
    db.auth.add_user("user-token", "u-user", "uma@acme.example.com")
    db.auth.add_user("other-token", "u-other", "otto@globex.example.com")
    db.auth.add_user("pending-token", "u-pending", "pat@acme.example.com")
    return db


@pytest.fixture
def runpod() -> FakeRunPod:
    return FakeRunPod()


@pytest.fixture
def app(test_settings, supabase, runpod):
    return create_app(test_settings, supabase_clients=SupabaseClients(supabase, supabase), runpod=runpod)


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


def auth_header(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def add_order(db: FakeSupabase, **fields) -> Dict:
    order = {
        "id": fields.pop("id", str(uuid.uuid4())),
        "user_id": "u-user",
        "organization_id": ORG_ID,
        "name": "render-box",
        "datacenter_id": "EU-RO-1",
        "storage_gb": 50,
        "gpu_type": "NVIDIA GeForce RTX 4090",
        "status": "running",
        "pod_id": "pod-9",
        "volume_id": "vol-9",
        "workspace_url": "https://pod-9-8080.proxy.runpod.net/",
        "created_at": datetime.now(timezone.utc).isoformat(),
    }
    order.update(fields)
    db.tables.setdefault("orders", []).append(order)
    return order
