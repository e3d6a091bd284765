from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, List


class Settings(BaseSettings):
    # Supabase
    supabase_url: str = ""
    supabase_key: str = ""  # public/anon key
    supabase_service_role_key: Optional[str] = None  # Required for admin operations (invite, delete user)

    # RunPod
    runpod_api_key: Optional[str] = None
    runpod_registry_auth_id: Optional[str] = None
    runpod_rest_url: str = "https://rest.runpod.io/v1"
    runpod_graphql_url: str = "https://api.runpod.io/graphql"
    runpod_timeout_seconds: float = 30.0

    # Pod template
    pod_image_name: str = "ghcr.io/andrewabbey-art/arion_flow:0.5"
    pod_container_disk_gb: int = 20
    pod_volume_mount_path: str = "/workspace/models"
    pod_ports: str = "8080/http,22/tcp"
    workspace_port: int = 8080
    default_gpu_type: str = "NVIDIA GeForce RTX 4090"

    # Provisioning readiness poll (12 x 5s)
    pod_ready_poll_attempts: int = 12
    pod_ready_poll_interval_seconds: float = 5.0

    # Session timeout
    idle_timeout_seconds: int = 300
    idle_countdown_seconds: int = 30

    # Dashboard poller
    dashboard_poller_enabled: bool = False
    telemetry_poll_interval_seconds: float = 15.0
    workspace_poll_interval_seconds: float = 10.0
    workspace_probe_timeout_seconds: float = 5.0

    # App
    app_name: str = "arion-flow"
    debug: bool = False
    environment: str = "development"  # development | staging | production
    log_level: str = "INFO"
    cors_origins: str = "http://localhost:3000,http://127.0.0.1:3000"
    rate_limit: str = "100/minute"  # slowapi format, e.g. "100/minute"
    host: str = "0.0.0.0"
    port: int = 8000

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def runpod_configured(self) -> bool:
        return bool(self.runpod_api_key and self.runpod_registry_auth_id)

    def get_cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    def get_pod_ports_list(self) -> List[str]:
        return [p.strip() for p in self.pod_ports.split(",") if p.strip()]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        env_prefix="",
        extra="ignore"
    )


settings = Settings()
