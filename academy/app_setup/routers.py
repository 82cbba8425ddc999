"""
Registre central des routers (API v1, health).
"""
from fastapi import FastAPI

from academy.payments import views as payments_views
from academy.cart import views as cart_views
from academy.courses import views as courses_views
from academy.programs import views as programs_views
from academy.schedule import views as schedule_views
from academy.health.router import router as health_router

def register_routers(app: FastAPI) -> None:
    # API v1
    app.include_router(payments_views.router)
    app.include_router(cart_views.router)
    app.include_router(courses_views.router)
    app.include_router(programs_views.router)
    app.include_router(schedule_views.router)
    # Health & monitoring
    app.include_router(health_router)
