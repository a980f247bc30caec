from supabase import create_client, Client
from supabase.client import ClientOptions
from magaza.config import settings
from typing import Optional

# Where the auth client keeps the PKCE verifier between sign_in_with_oauth / sign_up and the code exchange
CODE_VERIFIER_KEY = "supabase.auth.token-code-verifier"


class SupabaseClient:
    _client: Client = None
    _service_client: Client = None

    @classmethod
    def get_client(cls) -> Client:
        if cls._client is None:
            cls._client = create_client(settings.supabase_url, settings.supabase_key)
        return cls._client

    @classmethod
    def get_service_client(cls) -> Client:
        """Client with service_role key; bypasses RLS. Falls back to the anon client."""
        if cls._service_client is None and settings.supabase_service_role_key:
            cls._service_client = create_client(
                settings.supabase_url, settings.supabase_service_role_key
            )
        return cls._service_client or cls.get_client()

    @classmethod
    def has_service_role(cls) -> bool:
        return bool(settings.supabase_service_role_key)

    @classmethod
    def create_auth_client(cls) -> Client:
        """Fresh PKCE client per request; its storage holds only this request's code verifier."""
        return create_client(
            settings.supabase_url, settings.supabase_key, options=ClientOptions(flow_type="pkce")
        )


def get_supabase() -> Client:
    return SupabaseClient.get_client()


def get_service_supabase() -> Client:
    return SupabaseClient.get_service_client()


def get_auth_client() -> Client:
    return SupabaseClient.create_auth_client()


def pending_code_verifier(client: Client) -> Optional[str]:
    """PKCE verifier stored by the last flow started on `client`, if any"""
    return client.options.storage.get_item(CODE_VERIFIER_KEY)
