"""
HA Version Control - FastAPI Application
History, diff and safe restore for the Home Assistant configuration directory
"""
import hmac
import logging
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Request, Security
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ha_version_control.api import history, logs
from ha_version_control.config import Settings
from ha_version_control.services.git_manager import GitManager
from ha_version_control.utils.logger import LOGGER_NAME, setup_logger

VERSION = "1.0.0"

logger = logging.getLogger(LOGGER_NAME)
security = HTTPBearer(auto_error=False)


async def verify_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Security(security),
):
    """
    Verify the bearer token against API_TOKEN.

    With no API_TOKEN configured the add-on relies on Home Assistant ingress
    for access control and every request is accepted.
    """
    expected = request.app.state.settings.api_token
    if not expected:
        return None
    token = credentials.credentials if credentials else ''
    if not hmac.compare_digest(token.encode(), expected.encode()):
        logger.warning("❌ Invalid API token")
        raise HTTPException(status_code=401, detail="Invalid authentication token")
    return token


def create_app(settings: Optional[Settings] = None, git_manager: Optional[GitManager] = None) -> FastAPI:
    """Build the application for one config directory"""
    settings = settings or Settings.from_env()
    setup_logger(LOGGER_NAME, settings.log_level)

    app = FastAPI(
        title="HA Version Control API",
        description="Version history and safe restore for Home Assistant configuration",
        version=VERSION,
        docs_url="/docs",
        redoc_url="/redoc"
    )
    app.state.settings = settings
    app.state.git_manager = git_manager or GitManager(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(history.router, prefix="/api/history", tags=["History"], dependencies=[Depends(verify_token)])
    app.include_router(logs.router, prefix="/api/logs", tags=["Logs"], dependencies=[Depends(verify_token)])

    @app.get("/")
    async def root():
        """Root endpoint with API information"""
        return {
            "name": "HA Version Control API",
            "version": VERSION,
            "docs": "/docs",
            "endpoints": {
                "history": "/api/history",
                "logs": "/api/logs",
            }
        }

    @app.get("/api/health")
    async def health():
        """Health check endpoint (no auth required)"""
        return {
            "status": "healthy",
            "version": VERSION,
            "config_path": str(settings.config_path),
            "auth_enabled": bool(settings.api_token),
        }

    @app.exception_handler(Exception)
    async def global_exception_handler(request, exc):
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"detail": f"Internal server error: {str(exc)}"}
        )

    logger.info(f"=== HA Version Control {VERSION} ===")
    logger.info(f"CONFIG_PATH: {settings.config_path}")
    logger.info(f"Auth: {'API_TOKEN' if settings.api_token else 'disabled (ingress only)'}")
    return app


if __name__ == "__main__":
    import uvicorn
    settings = Settings.from_env()
    uvicorn.run(create_app(settings), host="0.0.0.0", port=settings.port)
