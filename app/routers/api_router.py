from fastapi import APIRouter
from app.routers import components, payroll, staff

# Centralized API router hub
# Routers are aggregated here, and main.py only imports this single hub.
api_router = APIRouter()

# Component routes first so "/payroll/components" is matched before payroll's own paths
api_router.include_router(components.router, tags=["Salary Components"])
api_router.include_router(payroll.router, tags=["Payroll"])
api_router.include_router(staff.router, tags=["Staff"])
