"""
Route templates: the canonical daily catalog.

One template per ordered (source, destination) pair of distinct locations,
enumerated with sources in the outer loop and destinations in the inner loop.
For N locations that is N * (N - 1) templates; N <= 1 gives none.

For template index i (0-based, in enumeration order):
  run_number     = base_run_number + i
  departure_time = base_departure + i * departure_increment_minutes
  arrival_time   = departure_time + journey_minutes

Times are wall-clock times and wrap past midnight.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import time
from typing import Sequence

from app.core.config import CatalogConfig

_MINUTES_PER_DAY = 24 * 60


@dataclass(frozen=True)
class RouteTemplate:
    run_number: int
    source: str
    destination: str
    departure_time: time
    arrival_time: time
    capacity: int


def add_minutes(t: time, minutes: int) -> time:
    total = (t.hour * 60 + t.minute + minutes) % _MINUTES_PER_DAY
    return time(total // 60, total % 60)


def generate_route_templates(
    locations: Sequence[str],
    *,
    base_run_number: int,
    base_departure: time,
    departure_increment_minutes: int,
    journey_minutes: int,
    capacity: int,
) -> list[RouteTemplate]:
    templates: list[RouteTemplate] = []

    for source in locations:
        for destination in locations:
            if source == destination:
                continue
            index = len(templates)
            departure = add_minutes(base_departure, departure_increment_minutes * index)
            templates.append(
                RouteTemplate(
                    run_number=base_run_number + index,
                    source=source,
                    destination=destination,
                    departure_time=departure,
                    arrival_time=add_minutes(departure, journey_minutes),
                    capacity=capacity,
                )
            )

    return templates


def default_templates(cfg: CatalogConfig) -> list[RouteTemplate]:
    return generate_route_templates(
        cfg.locations,
        base_run_number=cfg.base_run_number,
        base_departure=cfg.base_departure,
        departure_increment_minutes=cfg.departure_increment_minutes,
        journey_minutes=cfg.journey_minutes,
        capacity=cfg.capacity,
    )
