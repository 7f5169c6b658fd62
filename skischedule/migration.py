"""
One-time copy of local events into the remote backend.

Runs at most once per installation. The flag MIGRATION_FLAG is set after
the first attempt whatever the outcome: this is an "attempt once" policy,
failed rows are reported but never retried automatically.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from skischedule.errors import StoreError
from skischedule.storage import FlagStore, LocalEventBackend

if TYPE_CHECKING:
    from skischedule.context import AppContext
    from skischedule.events import EventBackend

log = logging.getLogger(__name__)

MIGRATION_FLAG = "ski-schedule-migrated-v1"


@dataclass
class MigrationResult:
    succeeded: int = 0
    failed: int = 0


def is_migration_done(flags: FlagStore) -> bool:
    return flags.is_set(MIGRATION_FLAG)


def migrate_local_to_remote(
    local: LocalEventBackend,
    remote: Optional["EventBackend"],
    flags: FlagStore,
) -> MigrationResult:
    """
    Insert every local event into remote, counting successes and failures.

    No-op returning (0, 0) if remote is None or the flag is already set.
    The remote backend assigns new ids and timestamps.
    """
    if remote is None or is_migration_done(flags):
        return MigrationResult()

    result = MigrationResult()
    for event in local.list_all():
        try:
            remote.insert(event)
            result.succeeded += 1
        except StoreError as e:
            log.warning("migration of %s (%s %s) failed: %s", event.id, event.date, event.title, e)
            result.failed += 1

    flags.set(MIGRATION_FLAG, True)
    log.info("migration finished: %d succeeded, %d failed", result.succeeded, result.failed)
    return result


def migrate(ctx: "AppContext") -> MigrationResult:
    """Resolve the current remote identity and run the migration for it."""
    user_id = ctx.session.resolve_user_id() if ctx.session is not None else None
    remote = ctx.session.backend(user_id) if ctx.session is not None and user_id else None
    return migrate_local_to_remote(ctx.local, remote, ctx.flags)
