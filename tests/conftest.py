"""
Shared pytest fixtures for the Secure Vault test suite.

Autouse fixtures below isolate tests from the live application data:
  - Audit logger   -> temp directory  (prevents fake events in the real audit log)
  - Settings       -> temp SECURE_VAULT_HOME
  - API singleton  -> reset per test
"""

import pytest


@pytest.fixture(autouse=True)
def _isolate_audit_logs(tmp_path, monkeypatch):
    """Redirect the global AuditLogger to a temp directory for every test.

    Without this, any test that (directly or indirectly) calls
    ``get_audit_logger().log_event(...)`` writes into the real audit
    directory under ``~/.secure-vault``.
    """
    import secure_vault.core.audit_log as audit_mod

    old_logger = audit_mod._audit_logger
    audit_mod._audit_logger = None

    orig_init = audit_mod.AuditLogger.__init__

    def patched_init(self, log_dir=None):
        orig_init(self, log_dir=log_dir or tmp_path / "audit_logs")

    monkeypatch.setattr(audit_mod.AuditLogger, "__init__", patched_init)

    yield

    audit_mod._audit_logger = old_logger


@pytest.fixture(autouse=True)
def _isolate_settings(tmp_path, monkeypatch):
    """Point SECURE_VAULT_HOME at a temp directory."""
    monkeypatch.setenv("SECURE_VAULT_HOME", str(tmp_path / "home"))
    monkeypatch.delenv("SECURE_VAULT_AUDIT_DIR", raising=False)
    yield


@pytest.fixture(autouse=True)
def _isolate_vault_manager():
    """Reset the API's VaultManager singleton for every test."""
    import secure_vault.api.vault_routes as routes_mod

    old_manager = routes_mod._vault_manager
    routes_mod._vault_manager = None

    yield

    routes_mod._vault_manager = old_manager


@pytest.fixture
def storage(tmp_path):
    from secure_vault.vault.storage import VaultStorage

    return VaultStorage(tmp_path / "data" / "secure_vault.db")


@pytest.fixture
def backing(tmp_path):
    from secure_vault.vault.blob_store import open_backing

    return open_backing(tmp_path / "vault-files")


@pytest.fixture
def manager(tmp_path):
    """An initialized, still locked VaultManager in a temp directory."""
    from secure_vault.vault import VaultManager

    mgr = VaultManager(data_dir=tmp_path / "data")
    mgr.initialize_backing(tmp_path / "vault-files")
    return mgr
