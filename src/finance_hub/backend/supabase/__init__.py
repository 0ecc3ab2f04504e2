"""Gateways for a hosted Supabase project (GoTrue auth + PostgREST data)."""
from finance_hub.backend.supabase.auth import SupabaseAuthGateway
from finance_hub.backend.supabase.postgrest import PostgrestGateway

__all__ = ["PostgrestGateway", "SupabaseAuthGateway"]
