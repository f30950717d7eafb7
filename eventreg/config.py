# eventreg.config
from pathlib import Path
import os
from dotenv import load_dotenv

# Calculer le chemin du projet puis charger .env de manière explicite
BASE_DIR = Path(__file__).resolve().parent.parent
ENV_PATH = BASE_DIR / ".env"
load_dotenv(dotenv_path=ENV_PATH, override=True)

"""
Configuration centrale du backend inscriptions/paiements.

- Charge le fichier .env à la racine du projet (BASE_DIR/.env)
- Normalise et expose les secrets/URLs (Supabase, Stripe, Resend), CORS/hosts
- Expose les paramètres du runner de jobs et de la purge des inscriptions 'pending'
"""

def _clean_env(v: str) -> str:
    """
    Nettoie une valeur d'environnement:
    - supprime les espaces et guillemets (simples, doubles) et backticks
    - retourne toujours une chaîne (jamais None)
    """
    return (v or "").strip().strip("'").strip('"').strip("`")

def _int_env(name: str, default: int) -> int:
    raw = _clean_env(os.getenv(name) or "")
    try:
        return int(raw) if raw else default
    except ValueError:
        return default

# Supabase: URL et clés (anon/service)
# - SUPABASE_URL peut parfois être sans schéma: on préfixe en https:// si nécessaire
SUPABASE_URL = _clean_env(os.getenv("SUPABASE_URL") or "")
SUPABASE_ANON = _clean_env(os.getenv("SUPABASE_ANON_KEY") or os.getenv("SUPABASE_KEY") or "")
SUPABASE_SERVICE_KEY = _clean_env(os.getenv("SUPABASE_SERVICE_KEY") or os.getenv("SUPABASE_SERVICE_ROLE_KEY") or "")

if SUPABASE_URL and not SUPABASE_URL.startswith("http"):
    SUPABASE_URL = "https://" + SUPABASE_URL
if SUPABASE_URL.endswith("/"):
    SUPABASE_URL = SUPABASE_URL.rstrip("/")

# CORS / hosts
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
ALLOWED_HOSTS = [h.strip() for h in os.getenv("ALLOWED_HOSTS", "localhost,127.0.0.1").split(",") if h.strip()]
COOKIE_SECURE = (os.getenv("COOKIE_SECURE", "false").lower() == "true")

# Stripe: clé secrète, secret webhook et devise des sessions
STRIPE_SECRET_KEY = _clean_env(os.getenv("STRIPE_SECRET_KEY") or "")
STRIPE_WEBHOOK_SECRET = _clean_env(os.getenv("STRIPE_WEBHOOK_SECRET") or "")
STRIPE_CURRENCY = _clean_env(os.getenv("STRIPE_CURRENCY") or "usd").lower()

# Emails transactionnels (Resend)
RESEND_API_KEY = _clean_env(os.getenv("RESEND_API_KEY") or "")
RESEND_API_URL = _clean_env(os.getenv("RESEND_API_URL") or "https://api.resend.com/emails")
EMAIL_FROM = _clean_env(os.getenv("EMAIL_FROM") or "5 Points Cup <noreply@5pointscup.com>")

# URLs de redirection du checkout ({event_id} est substitué)
BASE_URL = _clean_env(os.getenv("BASE_URL") or "http://localhost:8000")
CHECKOUT_SUCCESS_PATH = os.getenv(
    "CHECKOUT_SUCCESS_PATH", "/events/{event_id}/confirmation?session_id={{CHECKOUT_SESSION_ID}}"
)
CHECKOUT_CANCEL_PATH = os.getenv("CHECKOUT_CANCEL_PATH", "/events/{event_id}/register")

# Fuseau des dates/heures d'événements (date + start_time sont stockés sans fuseau)
EVENT_TIMEZONE = _clean_env(os.getenv("EVENT_TIMEZONE") or "UTC")

# Runner de jobs planifiés
JOBS_BATCH_SIZE = _int_env("JOBS_BATCH_SIZE", 50)
JOBS_MAX_ATTEMPTS = _int_env("JOBS_MAX_ATTEMPTS", 3)
JOBS_RUNNER_TOKEN = _clean_env(os.getenv("JOBS_RUNNER_TOKEN") or "")

# Inscriptions 'pending' abandonnées: purgées après ce délai
PENDING_TTL_MINUTES = _int_env("PENDING_TTL_MINUTES", 60)
