from fastapi import APIRouter
from .chat import router as chat_router
from .approvals import router as approvals_router
from .respuestas import router as respuestas_router

# chat primero: /respuestas/chat/... antes que /respuestas/{response_id}
router = APIRouter()
router.include_router(chat_router)
router.include_router(approvals_router)
router.include_router(respuestas_router)
