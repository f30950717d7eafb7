from urllib.parse import urlparse
import socket
from eventreg.config import SUPABASE_URL, STRIPE_SECRET_KEY, STRIPE_WEBHOOK_SECRET, RESEND_API_KEY
import eventreg.infra.supabase_client as supabase_client

LEDGER_TABLES = ["events", "registrants", "payments", "scheduled_jobs"]

def _check_table(client, name: str):
    try:
        res = client.table(name).select("id").limit(1).execute()
        cnt = len(res.data or [])
        return {"ok": True, "rows": cnt}
    except Exception as e:
        return {"ok": False, "error": str(e)}

# module eventreg.health.service
def health_supabase_info():
    parsed = urlparse(SUPABASE_URL) if SUPABASE_URL else None
    hostname = parsed.hostname if parsed else None
    dns_ok = None
    dns_error = None
    if hostname:
        try:
            socket.getaddrinfo(hostname, 443)
            dns_ok = True
        except OSError as e:
            dns_ok = False
            dns_error = str(e)

    info = {
        "supabase_url": SUPABASE_URL,
        "hostname": hostname,
        "dns_ok": dns_ok,
        "dns_error": dns_error,
        "connect_ok": False,
        "error": None,
        "tables": {},
    }
    try:
        client = supabase_client.get_service_supabase()
        for t in LEDGER_TABLES:
            info["tables"][t] = _check_table(client, t)
        info["connect_ok"] = True
    except Exception as e:
        info["error"] = str(e)
    return info

def providers_info():
    """Présence (pas la valeur) des secrets fournisseurs."""
    return {
        "stripe": bool(STRIPE_SECRET_KEY),
        "stripe_webhook_verified": bool(STRIPE_WEBHOOK_SECRET),
        "resend": bool(RESEND_API_KEY),
    }
