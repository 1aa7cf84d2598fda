"""
API FastAPI — Remplissage automatique de formulaires
────────────────────────────────────────────────────

Endpoints:
  GET  /api/test          → Vérifie que le backend répond
  GET  /api/key-status    → Indique si la clé du fournisseur LLM est configurée
  POST /api/process-form  → formMap + userData → mappedFields

Lancement :
  form-filler
  uvicorn form_filler.main:create_app --factory --port 3000
"""
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.sessions import SessionMiddleware
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from .config import Settings, configure_logging
from .errors import DecodeError, GatewayError, ValidationError
from .extractor import FormExtractor
from .llm_client import CompletionGateway, build_gateway
from .schemas import ErrorResponse, KeyStatusResponse, ProcessFormRequest, ProcessFormResponse

logger = logging.getLogger(__name__)

PROCESS_FORM_PATH = "/api/process-form"


# ════════════════════════════════════════════════════════
#  DÉPENDANCES
# ════════════════════════════════════════════════════════

def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_extractor(request: Request) -> FormExtractor:
    return request.app.state.extractor


# ════════════════════════════════════════════════════════
#  ROUTES
# ════════════════════════════════════════════════════════

router = APIRouter(prefix="/api")


@router.get("/test")
async def api_test():
    return {"message": "Backend is running!"}


@router.get("/key-status", response_model=KeyStatusResponse)
async def key_status(settings: Settings = Depends(get_settings)):
    if settings.has_api_key:
        return {"status": "configured", "message": "API key is configured"}
    return {"status": "missing", "message": "API key is not configured"}


@router.post(
    "/process-form",
    response_model=ProcessFormResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def process_form(
    body: Optional[ProcessFormRequest] = None,
    extractor: FormExtractor = Depends(get_extractor),
):
    """
    Remplit un formulaire à partir des informations utilisateur.

    Exemple de requête :
    {
      "formMap": [{"id": "email", "type": "email", "nearbyText": "Your email address"}],
      "userData": "John Doe, email: john@example.com"
    }

    Réponse :
    {
      "success": true,
      "processedData": {"mappedFields": [{"id": "email", "value": "john@example.com"}]}
    }
    """
    if body is None or not body.formMap or not body.userData:
        raise ValidationError()

    try:
        result = await extractor.extract(body.formMap, body.userData)
    except (GatewayError, DecodeError) as e:
        logger.error("Error processing form: %s", e, exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to process form", "message": str(e)},
        )

    return ProcessFormResponse(processedData=result)


# ════════════════════════════════════════════════════════
#  GESTION DES ERREURS
# ════════════════════════════════════════════════════════

async def _validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    logger.warning("400 %s %s: %s", request.method, request.url.path, exc)
    content = {"error": str(exc)}
    if exc.details:
        content["details"] = exc.details
    return JSONResponse(status_code=400, content=content)


def _is_blank(value: Any) -> bool:
    return value is None or value == "" or value == []


def _has_required_fields(body: Any) -> bool:
    return isinstance(body, dict) and not _is_blank(body.get("formMap")) and not _is_blank(body.get("userData"))


async def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = [
        {"loc": [str(part) for part in err.get("loc", ())], "msg": err.get("msg", "")}
        for err in exc.errors()
    ]
    if request.url.path == PROCESS_FORM_PATH:
        # Champ absent → toujours le corps exact, même si un autre champ est mal typé
        if not _has_required_fields(exc.body):
            return await _validation_error_handler(request, ValidationError())
        return await _validation_error_handler(request, ValidationError(details=details))

    logger.warning("422 %s %s: %s", request.method, request.url.path, details)
    return JSONResponse(status_code=422, content={"detail": details})


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"error": "Something broke!", "message": str(exc)},
    )


class UnhandledErrorMiddleware:
    """
    Convertit toute exception non gérée en 500 JSON.

    Placé sous CORSMiddleware : la réponse 500 porte les en-têtes CORS.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        response_started = False

        async def send_wrapped(message: Message) -> None:
            nonlocal response_started
            if message.get("type") == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, receive, send_wrapped)
        except Exception as exc:
            if response_started:
                raise
            response = await _unhandled_error_handler(Request(scope), exc)
            await response(scope, receive, send)


# ════════════════════════════════════════════════════════
#  APPLICATION
# ════════════════════════════════════════════════════════

def create_app(
    settings: Optional[Settings] = None,
    gateway: Optional[CompletionGateway] = None,
) -> FastAPI:
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.extractor.gateway.aclose()

    app = FastAPI(
        title="Form Filler API",
        description="Remplit des formulaires web à partir de données utilisateur via un LLM",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.extractor = FormExtractor(
        gateway or build_gateway(settings),
        filter_unknown_fields=settings.filter_unknown_fields,
    )

    # Ordre : le dernier ajouté est le plus externe
    app.add_middleware(UnhandledErrorMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.session_secret,
        same_site="none" if settings.production else "lax",
        https_only=settings.production,
    )

    app.add_exception_handler(ValidationError, _validation_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)

    app.include_router(router)

    if not settings.has_api_key and settings.provider == "openai":
        logger.warning("OPENAI_API_KEY is not set, /api/process-form will fail until it is configured")

    return app


def run() -> None:
    import uvicorn

    settings = Settings.from_env()
    app = create_app(settings)
    # uvicorn confirme lui-même l'écoute une fois le port ouvert
    logger.info("Starting server on %s:%d", settings.host, settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    run()
