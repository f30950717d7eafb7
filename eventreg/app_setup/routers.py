"""
Registre central des routers.
- API v1: payments (checkout, webhook), registrations (RSVP gratuit), refunds, jobs
- Health: health_router
"""
from fastapi import FastAPI
from eventreg.payments import views as payments_views
from eventreg.registrations import views as registrations_views
from eventreg.refunds import views as refunds_views
from eventreg.jobs import views as jobs_views
from eventreg.health.router import router as health_router

def register_routers(app: FastAPI) -> None:
    # API v1
    app.include_router(payments_views.router)
    app.include_router(registrations_views.router)
    app.include_router(refunds_views.router)
    app.include_router(jobs_views.router)
    # Health & monitoring
    app.include_router(health_router)
