"""
API v1 router initialization and setup.
"""
from fastapi import APIRouter
from .endpoints import prices, harvests

api_router = APIRouter()

api_router.include_router(
    prices.router,
    prefix="/prices",
    tags=["prices"]
)

api_router.include_router(
    harvests.router,
    prefix="/harvests",
    tags=["harvests"]
)
