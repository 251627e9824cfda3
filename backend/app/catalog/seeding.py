from __future__ import annotations

import logging
import uuid
from datetime import date
from typing import Sequence

from app.catalog.store import RunStore
from app.catalog.templates import RouteTemplate

logger = logging.getLogger(__name__)


def ensure_catalog_for_date(
    store: RunStore,
    service_date: date,
    templates: Sequence[RouteTemplate],
) -> int:
    """
    Insert the runs from `templates` that are missing, dated `service_date`.

    run_number is unique across the whole table, not per date: a template whose
    number is held by any existing row is skipped. A concurrent writer that wins
    the race surfaces as insert_if_absent() == False and is treated the same way.

    Commits once for the date. Returns the number of rows inserted; calling again
    without intervening deletes inserts 0.
    """
    present = store.all_run_numbers()
    inserted = 0
    lost_races = 0

    try:
        for tpl in templates:
            if tpl.run_number in present:
                continue

            ok = store.insert_if_absent(
                tpl.run_number,
                {
                    "id": uuid.uuid4(),
                    "source": tpl.source,
                    "destination": tpl.destination,
                    "departure_date": service_date,
                    "departure_time": tpl.departure_time,
                    "arrival_time": tpl.arrival_time,
                    "capacity": tpl.capacity,
                },
            )
            present.add(tpl.run_number)
            if ok:
                inserted += 1
            else:
                lost_races += 1

        store.commit()
    except Exception:
        store.rollback()
        raise

    if lost_races:
        logger.info("Seeding %s: %d run numbers taken by a concurrent writer", service_date, lost_races)
    logger.debug("Seeding %s: inserted=%d templates=%d", service_date, inserted, len(templates))
    return inserted
