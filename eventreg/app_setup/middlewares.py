"""
Middlewares transverses de l'API d'inscription.
- register_basic_middlewares: CORS (front d'inscription, console admin) et TrustedHost.
- register_security_middleware: en-têtes de sécurité et Cache-Control sur les routes /api/.
Pas de cookie ni de session: l'API s'authentifie par Bearer, le webhook par signature Stripe.
"""
from fastapi import Request, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.trustedhost import TrustedHostMiddleware
from eventreg.config import COOKIE_SECURE, CORS_ORIGINS, ALLOWED_HOSTS

SECURITY_HEADERS = {
    "X-Frame-Options": "DENY",
    "X-Content-Type-Options": "nosniff",
    "Referrer-Policy": "no-referrer",
}
HSTS = "max-age=63072000; includeSubDomains; preload"

def _trusted_hosts() -> list:
    # CORS ouvert (dev): on n'impose pas non plus la liste d'hôtes
    if "*" in CORS_ORIGINS:
        return ALLOWED_HOSTS + ["*"]
    return ALLOWED_HOSTS

def register_basic_middlewares(app: FastAPI) -> None:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "Stripe-Signature"],
    )
    app.add_middleware(TrustedHostMiddleware, allowed_hosts=_trusted_hosts())

def register_security_middleware(app: FastAPI) -> None:
    @app.middleware("http")
    async def security_headers(request: Request, call_next):
        response = await call_next(request)
        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
        if COOKIE_SECURE:
            response.headers.setdefault("Strict-Transport-Security", HSTS)
        # Réponses d'état (paiement, remboursement): jamais en cache
        if request.url.path.startswith("/api/"):
            response.headers["Cache-Control"] = "no-store"
        return response
