from fastapi import APIRouter
from payroll_engine.routers import payroll

# Centralized API router hub
# Routers are aggregated here, and main.py only imports this single hub.
api_router = APIRouter()

api_router.include_router(payroll.router, tags=["Payroll"])
