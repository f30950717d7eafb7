"""
Clients Supabase partagés (créés à la demande, un par clé).
- get_supabase(): clé anon, sert à valider les jetons Bearer (auth.get_user).
- get_service_supabase(): clé service-role (bypass RLS), seule voie d'écriture du ledger.
"""
from typing import Optional
from supabase import create_client, Client
from eventreg.config import SUPABASE_URL, SUPABASE_ANON, SUPABASE_SERVICE_KEY

_supabase: Optional[Client] = None
_service_supabase: Optional[Client] = None

def _connect(key: str, key_name: str) -> Client:
    if not SUPABASE_URL:
        raise RuntimeError("SUPABASE_URL manquant")
    if not key:
        raise RuntimeError(f"{key_name} manquant")
    return create_client(SUPABASE_URL, key)

def get_supabase() -> Client:
    global _supabase
    if _supabase is None:
        _supabase = _connect(SUPABASE_ANON, "SUPABASE_ANON_KEY")
    return _supabase

def get_service_supabase() -> Client:
    global _service_supabase
    if _service_supabase is None:
        _service_supabase = _connect(SUPABASE_SERVICE_KEY, "SUPABASE_SERVICE_KEY")
    return _service_supabase
