"""
API Router.

Aggregates all endpoint routers.
"""

from fastapi import APIRouter
from courier_backend.app.api.endpoints import parcels, payments, trackings, riders, users

router = APIRouter()

router.include_router(users.router)
router.include_router(parcels.router)
router.include_router(parcels.rider_router)
router.include_router(payments.router)
router.include_router(trackings.router)
router.include_router(riders.router)
