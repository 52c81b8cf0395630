"""FastAPI API endpoints under /api.

Endpoint groups: health, auth (register/login/logout/me), characters
(CRUD + popular), chat (turn, history, chat list). Identity comes from the
`auth-token` cookie or a Bearer header; see backend.deps.
"""

from fastapi import APIRouter

from .auth import router as auth_router
from .characters import router as characters_router
from .chat import router as chat_router
from .health import router as health_router

router = APIRouter()
router.include_router(health_router)
router.include_router(auth_router)
router.include_router(characters_router)
router.include_router(chat_router)
