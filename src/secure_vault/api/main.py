# Secure Vault - FastAPI Backend
#
# Local REST API consumed by the vault UI.
# Binds to localhost by default; every vault route needs the session token.

from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .. import __version__
from ..core import EventSeverity, EventType, get_audit_logger, load_settings
from .security import get_session_token, initialize_session_token
from .vault_routes import get_vault_manager, router as vault_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the session token if needed at startup; lock the vault at shutdown."""
    try:
        get_session_token()
    except RuntimeError:
        initialize_session_token()
    get_audit_logger().log_event(
        event_type=EventType.SYSTEM_START,
        severity=EventSeverity.INFO,
        message="Secure Vault API started",
        details={"version": __version__},
    )
    try:
        yield
    finally:
        get_vault_manager().lock()
        get_audit_logger().log_event(
            event_type=EventType.SYSTEM_STOP,
            severity=EventSeverity.INFO,
            message="Secure Vault API stopped",
        )


app = FastAPI(
    title="Secure Vault API",
    description="Password-encrypted vault for text secrets and files",
    version=__version__,
    lifespan=lifespan,
)

# CORS: local UI origins only
_allowed_origins = [
    "http://localhost:3000", "http://127.0.0.1:3000",
    "http://localhost:5173", "http://127.0.0.1:5173",
]
app.add_middleware(
    CORSMiddleware,
    allow_origins=_allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(vault_router)


@app.get("/api/health")
async def health():
    """Liveness probe (no token required)."""
    return {"status": "ok", "version": __version__}


def start_api_server(host: str = None, port: int = None):
    """
    Start FastAPI server.

    Args:
        host: Host to bind to (default: SECURE_VAULT_HOST, localhost)
        port: Port to listen on (default: SECURE_VAULT_PORT)
    """
    settings = load_settings()
    host = host or settings.host
    port = port or settings.port
    print(f"X-Session-Token: {initialize_session_token()}")
    uvicorn.run(app, host=host, port=port, log_level="info")
