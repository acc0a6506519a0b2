from fastapi import APIRouter

from process_optimizer.api.v1 import diagrams, optimize

api_router = APIRouter()

api_router.include_router(diagrams.router)
api_router.include_router(optimize.router)
