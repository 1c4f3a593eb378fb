# Core - Settings
#
# Values come from the environment, after loading an optional .env file:
#
#   SECURE_VAULT_HOME       data directory (catalog database)  ~/.secure-vault
#   SECURE_VAULT_AUDIT_DIR  audit log directory                <home>/audit_logs
#   SECURE_VAULT_HOST       API bind address                   127.0.0.1
#   SECURE_VAULT_PORT       API port                           8000

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

DEFAULT_HOME = "~/.secure-vault"
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8000


@dataclass(frozen=True)
class VaultSettings:
    data_dir: Path
    audit_dir: Path
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT


def load_settings() -> VaultSettings:
    """Build settings from .env and the process environment."""
    load_dotenv()

    data_dir = Path(os.environ.get("SECURE_VAULT_HOME", DEFAULT_HOME)).expanduser()
    audit_dir = os.environ.get("SECURE_VAULT_AUDIT_DIR")
    port = os.environ.get("SECURE_VAULT_PORT", str(DEFAULT_PORT))
    try:
        port_number = int(port)
    except ValueError:
        raise ValueError(f"SECURE_VAULT_PORT must be an integer, got {port!r}")

    return VaultSettings(
        data_dir=data_dir,
        audit_dir=Path(audit_dir).expanduser() if audit_dir else data_dir / "audit_logs",
        host=os.environ.get("SECURE_VAULT_HOST", DEFAULT_HOST),
        port=port_number,
    )
