from __future__ import annotations

from typing import Optional, Union
from urllib.parse import urlparse, urlunparse

from photocap.config import Settings, get_settings
from photocap.logging import get_logger
from photocap.service.auth import TenantAuthService
from photocap.service.bookings import BookingService
from photocap.service.passwords import PasswordManager
from photocap.service.tenants import admin_policy, studio_policy
from photocap.service.tokens import TokenCodec
from photocap.storage.memory import MemoryStore
from photocap.storage.postgres import PostgresStore

logger = get_logger(__name__)

Store = Union[MemoryStore, PostgresStore]


def _mask_url_password(url: Optional[str]) -> Optional[str]:
    """Mask the password component of a DSN for logging.

    Example: postgresql://app:hunter2@db/photocap -> postgresql://app:***@db/photocap
    """
    if not url:
        return url
    try:
        parsed = urlparse(url)
    except ValueError:
        return "***url_parse_error***"
    if not parsed.password:
        return url
    netloc = parsed.hostname or ""
    if parsed.port:
        netloc = f"{netloc}:{parsed.port}"
    netloc = f"{parsed.username or ''}:***@{netloc}"
    return urlunparse(
        (parsed.scheme, netloc, parsed.path, parsed.params, parsed.query, parsed.fragment)
    )


class Runtime:
    """Holds the store and service instances for one FastAPI app.

    Construction is the startup fail-fast point: a missing signing secret
    raises :class:`ConfigurationError` before any route is served.
    """

    def __init__(self, settings: Optional[Settings] = None, store: Optional[Store] = None):
        self.settings = settings or get_settings()
        secret = self.settings.require_jwt_secret()
        logger.info(
            "runtime_init_started",
            app_env=self.settings.app_env.value,
            use_memory_store=self.settings.use_memory_store,
        )

        if store is not None:
            self.store = store
        else:
            store_type = "memory" if self.settings.use_memory_store else "postgres"
            try:
                self.store = (
                    MemoryStore()
                    if self.settings.use_memory_store
                    else PostgresStore(
                        self.settings.database_url,
                        min_size=self.settings.db_pool_min_size,
                        max_size=self.settings.db_pool_max_size,
                    )
                )
            except Exception as exc:
                logger.error(
                    "runtime_store_init_failed",
                    store_type=store_type,
                    database_url=_mask_url_password(self.settings.database_url),
                    error_type=type(exc).__name__,
                    error=str(exc),
                )
                raise
            logger.info("runtime_store_initialized", store_type=store_type)

        self.codec = TokenCodec(secret, leeway_seconds=self.settings.token_clock_skew_seconds)
        self.passwords = PasswordManager.from_settings(self.settings)
        self.admin_auth = TenantAuthService(
            self.store, self.codec, self.passwords, admin_policy(self.settings)
        )
        self.studio_auth = TenantAuthService(
            self.store, self.codec, self.passwords, studio_policy(self.settings)
        )
        self.bookings = BookingService(self.store)

    def close(self) -> None:
        self.store.close()
        logger.info("runtime_closed")
