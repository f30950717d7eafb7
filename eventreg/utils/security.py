"""
Identité de l'appelant: jeton d'accès Supabase (Bearer) résolu via supabase.auth.get_user.
Une seule notion de session pour tout le backend (pas de session admin parallèle);
les droits fins sont lus dans user_roles par chaque cas d'usage.
"""
import logging
from typing import Any, Dict, Optional

from fastapi import Request, HTTPException

from eventreg.config import JOBS_RUNNER_TOKEN
import eventreg.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

def bearer_token(request: Request) -> Optional[str]:
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header[7:].strip() or None
    return None

def get_user_from_token(access_token: str) -> Dict[str, Any]:
    """Normalise l'utilisateur renvoyé par supabase.auth.get_user(access_token): {id, email}."""
    res = supabase_client.get_supabase().auth.get_user(access_token)
    user = getattr(res, "user", None) or {}
    if not isinstance(user, dict):
        user = {"id": getattr(user, "id", None), "email": getattr(user, "email", None)}
    return {"id": user.get("id"), "email": user.get("email")}

# module eventreg.utils.security
def get_optional_user(request: Request) -> Optional[Dict[str, Any]]:
    """
    Retourne {id, email} si un Bearer valide est présent, sinon None.
    Le refus (401/403) est décidé par le cas d'usage, pas ici.
    """
    token = bearer_token(request)
    if not token:
        return None
    try:
        user = get_user_from_token(token)
    except Exception:
        logger.warning("utils.security.get_optional_user jeton rejeté par Supabase Auth")
        return None
    return user if user.get("id") else None

def require_jobs_runner(request: Request) -> None:
    """Si JOBS_RUNNER_TOKEN est défini, le déclencheur doit le présenter en Bearer."""
    if not JOBS_RUNNER_TOKEN:
        return
    if bearer_token(request) != JOBS_RUNNER_TOKEN:
        raise HTTPException(status_code=401, detail="Non authentifié")
