"""
ASGI entrypoint: expose `app` pour les process managers / déploiements
(ex: `uvicorn eventreg.asgi:app`, gunicorn avec UvicornWorker).
Toute la configuration FastAPI est centralisée dans eventreg.app_setup.factory.
"""

from eventreg.app_setup.factory import create_app

app = create_app()
