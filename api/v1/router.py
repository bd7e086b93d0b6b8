# api/v1/router.py
from fastapi import APIRouter

from . import meals, plans

api_router = APIRouter()

api_router.include_router(plans.router, prefix="/meal-plans", tags=["Meal plans"])
api_router.include_router(meals.router, prefix="/meals", tags=["Meals"])
