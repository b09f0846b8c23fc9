"""
API routes module.
"""

from fastapi import APIRouter

from app.api.routes import (
    assignments,
    audit_logs,
    auth,
    contractors,
    costs,
    dashboard,
    documents,
    driver_app,
    drivers,
    export,
    health,
    imports,
    invoices,
    notes,
    orders,
    trailers,
    users,
    vehicles,
    webhooks,
)

# Main API router (mounted at /api/v1)
api_router = APIRouter()

api_router.include_router(health.router)
api_router.include_router(auth.router)
api_router.include_router(users.router)

# Fleet and parties
api_router.include_router(drivers.router)
api_router.include_router(vehicles.router)
api_router.include_router(trailers.router)
api_router.include_router(contractors.router)

# Operations
api_router.include_router(orders.router)
api_router.include_router(assignments.router)
api_router.include_router(invoices.router)
api_router.include_router(costs.router)
api_router.include_router(documents.router)
api_router.include_router(notes.router)

# Data exchange and reporting
api_router.include_router(export.router)
api_router.include_router(imports.router)
api_router.include_router(dashboard.router)
api_router.include_router(audit_logs.router)
api_router.include_router(webhooks.router)

# Mobile app
api_router.include_router(driver_app.router)
