from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import httpx

from common.broadcaster import Scheduler, UIBroadcaster
from common.cipher import StorageCipher
from common.config import GatewaySettings
from state.backends import JsonFileBackend, StorageBackend, default_store_file
from state.local_store import LocalStore
from state.session import SessionManager

from .auth import AuthService
from .client import Navigator, RequestGateway
from .refresh import TokenRefresher


@dataclass
class AdminContext:
    """Everything a screen or script needs, wired once and passed around explicitly."""

    settings: GatewaySettings
    store: LocalStore
    session: SessionManager
    broadcaster: UIBroadcaster
    gateway: RequestGateway
    auth: AuthService

    @property
    def is_authenticated(self) -> bool:
        return self.session.is_authenticated

    async def aclose(self) -> None:
        await self.gateway.aclose()

    async def __aenter__(self) -> "AdminContext":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()


def build_context(
    settings: Optional[GatewaySettings] = None,
    *,
    backend: Optional[StorageBackend] = None,
    client: Optional[httpx.AsyncClient] = None,
    navigator: Optional[Navigator] = None,
    refresher: Optional[TokenRefresher] = None,
    scheduler: Optional[Scheduler] = None,
) -> AdminContext:
    """
    Wire store, session, broadcaster, gateway and auth flows.

    - `settings` default to `GatewaySettings.from_env()`.
    - `backend` defaults to a JSON file under `settings.store_dir`.
    """
    cfg = settings or GatewaySettings.from_env()
    store = LocalStore(
        backend or JsonFileBackend(default_store_file(cfg.store_dir)),
        StorageCipher(cfg.local_secret),
    )
    session = SessionManager(store)
    broadcaster = UIBroadcaster(scheduler=scheduler)
    gateway = RequestGateway(
        cfg,
        session,
        broadcaster,
        client=client,
        refresher=refresher,
        navigator=navigator,
    )
    return AdminContext(
        settings=cfg,
        store=store,
        session=session,
        broadcaster=broadcaster,
        gateway=gateway,
        auth=AuthService(gateway, session, broadcaster),
    )


__all__ = ["AdminContext", "build_context"]
