from fastapi import APIRouter
from .autentication import router as autentication_router
from .empresas import router as empresas_router


router = APIRouter()
router.include_router(autentication_router)
router.include_router(empresas_router)
