from fastapi import APIRouter
from . import fire

api_router = APIRouter()
api_router.include_router(fire.router, prefix="/fire", tags=["fire"])
