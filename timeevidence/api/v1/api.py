"""
V1 API router aggregator — wires all endpoint modules together.

Every route except /health sits behind the API-key guard.
"""

from fastapi import APIRouter, Depends

from timeevidence.api.v1.deps import require_api_key
from timeevidence.api.v1.endpoints import (employees, health, schedules,
                                           supervisors, timetracker)

api_router = APIRouter()

guarded = [Depends(require_api_key)]

# Terminal ingest and ledger views
api_router.include_router(timetracker.router, dependencies=guarded)

# Employees, card administration, supervisors, schedules
api_router.include_router(employees.router, dependencies=guarded)
api_router.include_router(supervisors.router, dependencies=guarded)
api_router.include_router(schedules.router, dependencies=guarded)

# Health
api_router.include_router(health.router)
