import logging
from datetime import date

from app.catalog.store import RunStore

logger = logging.getLogger(__name__)


def prune_expired(store: RunStore, cutoff: date) -> int:
    """Delete every run departing on or before `cutoff` in one statement. Returns rows deleted."""
    try:
        deleted = store.bulk_delete_through(cutoff)
        store.commit()
    except Exception:
        store.rollback()
        raise

    logger.info("Pruned %d runs with departure_date <= %s", deleted, cutoff)
    return deleted
