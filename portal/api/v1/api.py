"""
V1 API router aggregator — wires all endpoint modules together.
"""

from fastapi import APIRouter

from portal.api.v1.endpoints import auth, system, users, vendors

api_router = APIRouter()

# Login, logout, refresh, registration, password reset, own profile
api_router.include_router(auth.router)

# Account management & feature flags (super admin)
api_router.include_router(users.router)

# Vendor approval workflow
api_router.include_router(vendors.router)

# Health
api_router.include_router(system.router)
