"""Multi-origin venue search and fairness-aware ranking"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

from .aio import run_sync
from .errors import NoVenuesFoundError
from .interfaces import TravelMatrixClient, VenueDiscovery
from .midpoint import RoadMidpointResolver
from .models import (
    UNKNOWN_TRAVEL,
    Coordinate,
    RankedVenue,
    TravelCell,
    TravelMode,
    TravelResult,
    Venue,
)

logger = logging.getLogger(__name__)


# --- Module-level constants ---
SEARCH_RADIUS_M = 1500
MATRIX_BATCH_SIZE = 25   # destinations per Distance Matrix request
NEUTRAL_RATING = 3.0     # stands in for venues nobody has rated yet
SCORE_CAP_MINUTES = 100


@dataclass(frozen=True)
class ScoringWeights:
    """Policy weights for the composite score.

    Equity between participants counts most, venue quality second, absolute
    travel burden least. Tunable, not derived from anything.
    """
    fairness: float = 0.5
    rating: float = 0.3
    total_time: float = 0.2


DEFAULT_WEIGHTS = ScoringWeights()


def dedupe_venues(venues: Iterable[Venue]) -> List[Venue]:
    """Drop repeated venue ids, keeping the first occurrence and the input order"""
    seen = set()
    unique = []
    for venue in venues:
        if venue.id in seen:
            continue
        seen.add(venue.id)
        unique.append(venue)
    return unique


def chunked(items: Sequence, size: int) -> List[Sequence]:
    if size <= 0:
        raise ValueError("chunk size must be positive")
    return [items[start:start + size] for start in range(0, len(items), size)]


def _clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def score_venue(venue: Venue, travel: Sequence[TravelResult],
                weights: ScoringWeights = DEFAULT_WEIGHTS) -> RankedVenue:
    minutes = [t.duration_minutes for t in travel]
    spread = max(minutes) - min(minutes)
    total = sum(minutes)

    fairness_score = _clamp(100 - min(spread, SCORE_CAP_MINUTES))
    rating_score = _clamp((venue.rating or NEUTRAL_RATING) * 20)
    total_time_score = _clamp(100 - min(total / len(minutes), SCORE_CAP_MINUTES))
    composite = (
        fairness_score * weights.fairness
        + rating_score * weights.rating
        + total_time_score * weights.total_time
    )
    return RankedVenue(
        venue=venue,
        travel=tuple(travel),
        max_time_difference_minutes=spread,
        total_travel_minutes=total,
        fairness_score=fairness_score,
        rating_score=rating_score,
        total_time_score=total_time_score,
        composite_score=composite,
    )


def ranking_key(ranked: RankedVenue) -> Tuple:
    # Venues missing any travel time always sort after fully-known ones;
    # identical scores fall back to rating, then to the lighter total trip.
    return (
        not ranked.has_complete_travel_data,
        -(ranked.composite_score or 0.0),
        -(ranked.venue.rating or 0.0),
        ranked.total_travel_minutes if ranked.total_travel_minutes is not None else float("inf"),
    )


def rank_venues(ranked: Iterable[RankedVenue]) -> List[RankedVenue]:
    return sorted(ranked, key=ranking_key)


async def discover_venues(discovery: VenueDiscovery, center: Coordinate, radius_meters: int,
                          categories: Sequence[str]) -> Tuple[List[Venue], List[BaseException]]:
    """Search every category concurrently around `center`.

    Returns (venues in category order, per-category failures). A failed
    category contributes nothing; it never aborts the others.
    """
    results = await asyncio.gather(
        *(discovery.search_venues_async(center, radius_meters, category) for category in categories),
        return_exceptions=True,
    )
    venues: List[Venue] = []
    failures: List[BaseException] = []
    for category, res in zip(categories, results):
        if isinstance(res, BaseException):
            logger.warning("Venue search for '%s' failed: %s", category, res)
            failures.append(res)
            continue
        logger.info("Venue search for '%s' returned %d results", category, len(res))
        venues.extend(res)
    return venues, failures


def matrix_cell(matrix, origin_index: int, dest_index: int) -> TravelCell:
    try:
        cell = matrix[origin_index][dest_index]
    except (IndexError, KeyError, TypeError):
        return UNKNOWN_TRAVEL
    return cell if isinstance(cell, TravelCell) else UNKNOWN_TRAVEL


async def fetch_travel_times(matrix_client: TravelMatrixClient, origins: Sequence[Coordinate],
                             venues: Sequence[Venue], mode: TravelMode,
                             batch_size: int = MATRIX_BATCH_SIZE) -> List[List[TravelResult]]:
    """Travel results for every venue from every origin: result[venue][origin].

    Destinations are split into batches issued concurrently. A failed batch
    gets the sentinel for all of its venues instead of failing the search.
    """
    batches = chunked(list(venues), batch_size)
    matrices = await asyncio.gather(
        *(matrix_client.compute_matrix_async(origins, [v.coordinate for v in batch], mode) for batch in batches),
        return_exceptions=True,
    )

    per_venue: List[List[TravelResult]] = []
    for batch_no, (batch, matrix) in enumerate(zip(batches, matrices), start=1):
        if isinstance(matrix, BaseException):
            logger.warning("Distance matrix batch %d/%d (%d venues) failed: %s",
                           batch_no, len(batches), len(batch), matrix)
            matrix = None
        for j, venue in enumerate(batch):
            per_venue.append([
                TravelResult.from_cell(i, venue.id, matrix_cell(matrix, i, j) if matrix is not None else UNKNOWN_TRAVEL)
                for i in range(len(origins))
            ])
    return per_venue


class MeetingPlaceOptimizer:
    """Discovers venues around the meeting point and ranks them for everyone"""

    def __init__(
        self,
        resolver: RoadMidpointResolver,
        discovery: VenueDiscovery,
        matrix_client: TravelMatrixClient,
        search_radius: int = SEARCH_RADIUS_M,
        batch_size: int = MATRIX_BATCH_SIZE,
        weights: ScoringWeights = DEFAULT_WEIGHTS,
    ):
        self.resolver = resolver
        self.discovery = discovery
        self.matrix_client = matrix_client
        self.search_radius = search_radius
        self.batch_size = batch_size
        self.weights = weights

    def optimize(self, origins: Sequence[Coordinate], mode: TravelMode, categories: Sequence[str],
                 max_results: int, midpoint: Optional[Coordinate] = None) -> List[RankedVenue]:
        return run_sync(self.optimize_async(origins, mode, categories, max_results, midpoint))

    async def optimize_async(self, origins: Sequence[Coordinate], mode: TravelMode, categories: Sequence[str],
                             max_results: int, midpoint: Optional[Coordinate] = None) -> List[RankedVenue]:
        """
        Rank venues near the meeting point by fairness, rating and travel burden.
        Raises NoVenuesFoundError when discovery comes back empty, and re-raises
        the discovery error when every category failed.
        """
        if midpoint is None:
            midpoint = await self.resolver.resolve_async(origins)

        found, failures = await discover_venues(self.discovery, midpoint, self.search_radius, categories)
        if failures and len(failures) == len(categories):
            raise failures[0]

        venues = dedupe_venues(found)
        if not venues:
            raise NoVenuesFoundError(f"No venues found within {self.search_radius}m of {midpoint.as_param()}")
        logger.info("Scoring %d unique venues (%d before dedup) for %d origins",
                    len(venues), len(found), len(origins))

        travel = await fetch_travel_times(self.matrix_client, origins, venues, mode, self.batch_size)
        scored = [score_venue(venue, results, self.weights) for venue, results in zip(venues, travel)]
        return rank_venues(scored)[:max_results]
