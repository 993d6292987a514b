"""
Factory de l'application FastAPI.

Crée et configure l'application FastAPI avec:
- Routes (API REST + flux SSE)
- Middleware CORS
- Handlers d'erreurs
- Cycle de vie (base SQLite, reconnexion automatique, arrêt des flux)

ARCHITECTURE:
- Pattern Application Factory
- Racine de composition: flux, repository et services sont créés ici
  et stockés dans app.state
- Extensible pour tests (injection des flux et de la base)

UTILISATION:
    from vitals_overlay.api.app import create_app

    app = create_app()
    # ou pour tests
    app = create_app(settings=test_settings, heart_rate_feed=fake_feed)
"""

import asyncio
import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from vitals_overlay import __version__
from vitals_overlay.api.routes import (
    health_router,
    heart_rate_router,
    glucose_router,
    settings_router,
)
from vitals_overlay.application.services import FeedConnectionService, auto_connect
from vitals_overlay.config.settings import Settings, get_settings
from vitals_overlay.domain.exceptions import (
    AuthenticationError,
    ConnectionSupersededError,
    DomainError,
    InvalidInputError,
    TransportError,
    UpstreamError,
)
from vitals_overlay.infrastructure.database import DatabaseConnection, SettingsRepository, run_migrations
from vitals_overlay.infrastructure.feeds import GlucoseFeed, HeartRateFeed
from vitals_overlay.infrastructure.persistence.encryption import PasswordCipher
from vitals_overlay.infrastructure.providers import StromnoClient

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    *,
    heart_rate_feed: Optional[HeartRateFeed] = None,
    glucose_feed: Optional[GlucoseFeed] = None,
    database: Optional[DatabaseConnection] = None,
) -> FastAPI:
    """
    Crée et configure l'application FastAPI.

    Args:
        settings: Settings optionnels (pour les tests)
        heart_rate_feed: Flux cardiaque à utiliser à la place du flux par défaut
        glucose_feed: Flux glycémique à utiliser à la place du flux par défaut
        database: Connexion SQLite à utiliser (non connectée)

    Returns:
        Application FastAPI configurée
    """
    if settings is None:
        settings = get_settings()

    app = FastAPI(
        title="Vitals Overlay API",
        description=(
            "Relais temps réel de la fréquence cardiaque (Stromno) et de la "
            "glycémie (Dexcom Share) vers des overlays de streaming via SSE."
        ),
        version=__version__,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
    )

    build_services(
        app,
        settings,
        heart_rate_feed=heart_rate_feed,
        glucose_feed=glucose_feed,
        database=database,
    )

    configure_middlewares(app, settings)

    configure_error_handlers(app)

    register_routes(app)

    configure_lifecycle(app)

    logger.info("Application created and configured")
    return app


def build_services(
    app: FastAPI,
    settings: Settings,
    *,
    heart_rate_feed: Optional[HeartRateFeed] = None,
    glucose_feed: Optional[GlucoseFeed] = None,
    database: Optional[DatabaseConnection] = None,
) -> None:
    """
    Instancie les flux, la persistance et les services.

    Une seule instance de chaque flux existe par application.
    """
    if heart_rate_feed is None:
        heart_rate_feed = HeartRateFeed(
            client=StromnoClient(rpc_url=settings.STROMNO_RPC_URL, timeout=settings.HTTP_TIMEOUT),
            reconnect_delay=settings.HEART_RATE_RECONNECT_DELAY,
        )
    if glucose_feed is None:
        glucose_feed = GlucoseFeed(
            poll_interval=settings.GLUCOSE_POLL_INTERVAL,
            timeout=settings.HTTP_TIMEOUT,
        )
    if database is None:
        database = DatabaseConnection(settings.DATABASE_PATH)

    cipher = PasswordCipher.from_key(settings.ENCRYPTION_KEY)
    if cipher is None:
        logger.warning("ENCRYPTION_KEY not set, Dexcom password will be stored in clear text")

    repository = SettingsRepository(database, cipher)

    app.state.settings = settings
    app.state.heart_rate_feed = heart_rate_feed
    app.state.glucose_feed = glucose_feed
    app.state.database = database
    app.state.settings_repository = repository
    app.state.connection_service = FeedConnectionService(heart_rate_feed, glucose_feed, repository)
    app.state.auto_connect_task = None


def configure_middlewares(app: FastAPI, settings: Settings) -> None:
    """
    Configure les middlewares de l'application.

    Les overlays sont servis depuis une autre origine (OBS, navigateur),
    d'où le CORS ouvert par défaut.
    """
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    logger.debug("Middlewares configured")


def configure_error_handlers(app: FastAPI) -> None:
    """
    Configure les handlers d'erreurs globaux.

    Args:
        app: Application FastAPI
    """

    @app.exception_handler(DomainError)
    async def domain_error_handler(request: Request, exc: DomainError):
        """Handler pour les erreurs du domaine."""
        status_code = get_status_code_for_error(exc)

        logger.warning(f"Domain error: {exc.code} - {exc.message}")

        return JSONResponse(
            status_code=status_code,
            content={
                "success": False,
                **exc.to_dict(),
            },
        )

    @app.exception_handler(Exception)
    async def general_error_handler(request: Request, exc: Exception):
        """Handler pour les erreurs non gérées."""
        logger.exception(f"Unhandled error: {exc}")

        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "error": "INTERNAL_ERROR",
                "message": "Une erreur inattendue s'est produite",
                "details": {},
            },
        )

    logger.debug("Error handlers configured")


def get_status_code_for_error(exc: DomainError) -> int:
    """
    Détermine le code HTTP pour une erreur du domaine.

    Args:
        exc: Exception du domaine

    Returns:
        Code HTTP approprié
    """
    if isinstance(exc, InvalidInputError):
        return 400
    if isinstance(exc, AuthenticationError):
        return 401
    if isinstance(exc, ConnectionSupersededError):
        return 409
    if isinstance(exc, UpstreamError):
        return 502
    if isinstance(exc, TransportError):
        return 503
    return 400


def register_routes(app: FastAPI) -> None:
    """
    Enregistre tous les routeurs.

    Args:
        app: Application FastAPI
    """
    app.include_router(health_router, prefix="/api")
    app.include_router(heart_rate_router, prefix="/api")
    app.include_router(glucose_router, prefix="/api")
    app.include_router(settings_router, prefix="/api")

    logger.debug("Routes registered")


def configure_lifecycle(app: FastAPI) -> None:
    """
    Configure les événements du cycle de vie.

    Args:
        app: Application FastAPI
    """

    @app.on_event("startup")
    async def startup():
        """Événement de démarrage."""
        logger.info("Application starting up...")
        settings: Settings = app.state.settings

        database: DatabaseConnection = app.state.database
        await database.connect()
        await run_migrations(database)
        logger.info(f"Settings database ready at {database.db_path}")

        # La reconnexion tourne en tâche de fond: un fournisseur lent
        # ne bloque pas le démarrage du serveur
        if settings.AUTO_CONNECT:
            app.state.auto_connect_task = asyncio.create_task(
                auto_connect(
                    app.state.settings_repository,
                    app.state.heart_rate_feed,
                    app.state.glucose_feed,
                ),
                name="auto-connect",
            )
        else:
            logger.info("Auto-connect disabled")

        logger.info("Application startup complete")

    @app.on_event("shutdown")
    async def shutdown():
        """Événement d'arrêt."""
        logger.info("Application shutting down...")

        task: Optional[asyncio.Task] = app.state.auto_connect_task
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        app.state.auto_connect_task = None

        try:
            await app.state.connection_service.shutdown()
        except Exception as e:
            logger.error(f"Error stopping feeds: {e}")

        await app.state.database.disconnect()

        logger.info("Application shutdown complete")


# =============================================================================
# INSTANCE PAR DÉFAUT
# =============================================================================

# Pour uvicorn: uvicorn vitals_overlay.api.app:app
app = create_app()
