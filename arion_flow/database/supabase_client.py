from typing import Optional

from fastapi import Request
from supabase import create_client, Client

from arion_flow.config import Settings


class SupabaseClients:
    """Anon and service-role clients for one application instance.

    Built in the application lifespan and stored on ``app.state.supabase``;
    handlers receive them through the dependencies below.
    """

    def __init__(self, client: Client, service_client: Optional[Client] = None):
        self.client = client
        self.service_client = service_client

    @classmethod
    def from_settings(cls, settings: Settings) -> "SupabaseClients":
        client = create_client(settings.supabase_url, settings.supabase_key)
        service_client = None
        if settings.supabase_service_role_key:
            service_client = create_client(
                settings.supabase_url, settings.supabase_service_role_key
            )
        return cls(client, service_client)

    @property
    def admin(self) -> Client:
        """Client with service_role key; bypasses RLS. Falls back to the anon client."""
        return self.service_client or self.client


def get_supabase(request: Request) -> Client:
    return request.app.state.supabase.client


def get_supabase_admin(request: Request) -> Client:
    return request.app.state.supabase.admin
