# Secure Vault - Web API
#
# FastAPI backend exposing the vault to the UI.

from .main import app, start_api_server
from .vault_routes import get_vault_manager

__all__ = [
    "app",
    "start_api_server",
    "get_vault_manager",
]
