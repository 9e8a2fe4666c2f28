from fastapi import APIRouter
from .generador import router as generador_router

router = APIRouter()
router.include_router(generador_router)
