"""
Dependency injection for the API service.
Provides the ledger, refresh service, log configuration and settings to route handlers.
"""
from __future__ import annotations

from shared.config import Settings
from shared.utils.log_sink import LogConfigStore

from reconciler.ledger import StatusLedger
from reconciler.refresh import RefreshService

# Module-level singletons, initialized at startup
_ledger: StatusLedger | None = None
_refresh: RefreshService | None = None
_log_config: LogConfigStore | None = None
_settings: Settings | None = None


def init_dependencies(
    ledger: StatusLedger,
    refresh: RefreshService,
    log_config: LogConfigStore,
    settings: Settings,
) -> None:
    """Initialize module-level singletons. Called once at startup."""
    global _ledger, _refresh, _log_config, _settings
    _ledger = ledger
    _refresh = refresh
    _log_config = log_config
    _settings = settings


def get_ledger() -> StatusLedger:
    """FastAPI dependency: returns the shared StatusLedger."""
    if _ledger is None:
        raise RuntimeError("StatusLedger not initialized. Call init_dependencies first.")
    return _ledger


def get_refresh() -> RefreshService:
    """FastAPI dependency: returns the shared RefreshService."""
    if _refresh is None:
        raise RuntimeError("RefreshService not initialized. Call init_dependencies first.")
    return _refresh


def get_log_config() -> LogConfigStore:
    """FastAPI dependency: returns the process log configuration."""
    if _log_config is None:
        raise RuntimeError("LogConfigStore not initialized. Call init_dependencies first.")
    return _log_config


def get_api_settings() -> Settings:
    """FastAPI dependency: returns the settings the service was started with."""
    if _settings is None:
        raise RuntimeError("Settings not initialized. Call init_dependencies first.")
    return _settings
