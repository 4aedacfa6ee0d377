"""API router aggregating all endpoints."""

from fastapi import APIRouter

from app.api.routes import appointments, auth, bookings, gdpr, health, practices, users

api_router = APIRouter()

# Health check
api_router.include_router(
    health.router,
    prefix="/health",
    tags=["health"],
)

# Authentication
api_router.include_router(
    auth.router,
    prefix="/auth",
    tags=["auth"],
)

# Practice directory
api_router.include_router(
    practices.router,
    tags=["practices"],
)

# Appointment slots
api_router.include_router(
    appointments.router,
    tags=["appointments"],
)

# Booking lifecycle
api_router.include_router(
    bookings.router,
    tags=["bookings"],
)

# Users
api_router.include_router(
    users.router,
    prefix="/users",
    tags=["users"],
)

# GDPR
api_router.include_router(
    gdpr.router,
    prefix="/gdpr",
    tags=["gdpr"],
)
