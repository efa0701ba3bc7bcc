"""Supabase client and progress store factories. Client is cached via Streamlit."""
import os

import streamlit as st
from dotenv import load_dotenv
from supabase import create_client, Client

from simulado.progress import SupabaseProgressStore

load_dotenv()


def _env_client() -> Client:
    url = os.environ.get("SUPABASE_URL")
    key = os.environ.get("SUPABASE_KEY")
    if not url or not key:
        raise ValueError("SUPABASE_URL and SUPABASE_KEY must be set")
    return create_client(url, key)


def backend_configured() -> bool:
    return bool(os.environ.get("SUPABASE_URL") and os.environ.get("SUPABASE_KEY"))


@st.cache_resource
def get_supabase() -> Client:
    return _env_client()


def get_progress_store(client: Client | None = None, user_id: str | None = None) -> SupabaseProgressStore:
    """Progress store for the signed-in user (or `user_id` when given)."""
    return SupabaseProgressStore(client or get_supabase(), user_id=user_id)
