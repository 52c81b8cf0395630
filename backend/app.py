import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from backend.routes import router
from character_chat.auth import TokenService
from character_chat.characters import CharacterRepository
from character_chat.chats import ChatRepository
from character_chat.config import Settings, build_llm, load_settings
from character_chat.errors import ChatAppError, UpstreamError, ValidationError
from character_chat.llm import LLM
from character_chat.store import JsonFileStore, RecordStore
from character_chat.users import UserRepository

logger = logging.getLogger(__name__)

GENERIC_ERROR = "Internal server error"


def create_app(
    settings: Settings | None = None,
    store: RecordStore | None = None,
    llm: LLM | None = None,
) -> FastAPI:
    """Build the app. Settings come from the environment unless given."""
    if settings is None:
        settings = load_settings()
        logging.basicConfig(level=settings.log_level.upper())
    store = store if store is not None else JsonFileStore(settings.data_dir)

    app = FastAPI(title="Character Chat")
    app.state.settings = settings
    app.state.store = store
    app.state.users = UserRepository(store, bcrypt_rounds=settings.bcrypt_rounds)
    app.state.characters = CharacterRepository(store)
    app.state.chats = ChatRepository(store)
    app.state.tokens = TokenService(settings.jwt_secret)
    app.state.llm = llm or build_llm(settings)

    app.include_router(router, prefix="/api")
    _install_error_handlers(app)
    return app


def _install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ChatAppError)
    async def domain_error(request: Request, exc: ChatAppError):
        if isinstance(exc, UpstreamError):
            logger.error("%s %s failed: %r", request.method, request.url.path, exc.__cause__ or exc)
            return JSONResponse({"error": GENERIC_ERROR}, status_code=exc.status_code)
        body: dict = {"error": exc.message}
        if isinstance(exc, ValidationError) and exc.details:
            body["details"] = exc.details
        return JSONResponse(body, status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def request_validation_error(request: Request, exc: RequestValidationError):
        details = [
            {
                "field": ".".join(str(part) for part in err.get("loc", ())[1:]),
                "message": err.get("msg", "Invalid value"),
            }
            for err in exc.errors()
        ]
        return JSONResponse({"error": "Validation failed", "details": details}, status_code=400)

    @app.exception_handler(Exception)
    async def unexpected_error(request: Request, exc: Exception):
        # the server logs the traceback itself
        logger.error("%s %s crashed: %r", request.method, request.url.path, exc)
        return JSONResponse({"error": GENERIC_ERROR}, status_code=500)
