"""
Wiring: builds the stores for one process from Settings.

The local backend, configuration store and flag store all live in
settings.data_dir. A RemoteSession is created only when the remote
service is configured; whether it is actually used is decided per call
by EventStore (signed in or not).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from skischedule.config_store import ConfigStore
from skischedule.events import EventStore
from skischedule.remote import RemoteSession
from skischedule.settings import Settings
from skischedule.storage import FlagStore, LocalConfigBackend, LocalEventBackend


@dataclass
class AppContext:
    settings: Settings
    local: LocalEventBackend
    config_store: ConfigStore
    flags: FlagStore
    store: EventStore
    session: Optional[RemoteSession] = None


def open_context(settings: Settings) -> AppContext:
    local = LocalEventBackend(settings.data_dir)
    config_store = ConfigStore(LocalConfigBackend(settings.data_dir))
    flags = FlagStore(settings.data_dir)

    session = RemoteSession(settings) if settings.remote_configured else None
    if session is not None:
        store = EventStore(local, config_store, remote_factory=session.backend, identity=session.resolve_user_id)
    else:
        store = EventStore(local, config_store)

    return AppContext(
        settings=settings,
        local=local,
        config_store=config_store,
        flags=flags,
        store=store,
        session=session,
    )
