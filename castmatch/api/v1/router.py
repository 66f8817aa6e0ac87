from fastapi import APIRouter

from castmatch.api.v1 import casting


api_router = APIRouter(prefix="/v1")

api_router.include_router(casting.router)
