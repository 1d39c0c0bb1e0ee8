"""
Geo Aggregator - groups reports by proximity and grades clusters.

Two views of "same area":
- Cell grouping: lat/lng rounded to CELL_PRECISION decimals (4 → ~11 m).
  Nearby-but-not-identical coordinates land in different cells; this is a
  coarse proxy, not radius clustering.
- Radius query: every report within radius_km (haversine) of a point.

Cluster severity tiers by report count:
    >= 10 critical, >= 7 high, >= 3 medium, else low

Reports with missing or out-of-range coordinates are excluded from both
views; one bad record never aborts the pass.
"""

from typing import Dict, List, Optional
import logging

from app.core.exceptions import AggregationError
from app.core.settings import settings
from app.models.report import Cluster, Report, Severity
from app.services.geo_math import haversine_km, is_valid_coordinate
from app.services.report_store import ReportStore, get_report_store

logger = logging.getLogger(__name__)

# Severity thresholds, highest first
SEVERITY_TIERS = [
    (10, Severity.CRITICAL),
    (7, Severity.HIGH),
    (3, Severity.MEDIUM),
]

DEFAULT_RADIUS_KM = 1.0


def cluster_severity(count: int) -> Severity:
    """Severity tier for a cluster of `count` reports."""
    for threshold, severity in SEVERITY_TIERS:
        if count >= threshold:
            return severity
    return Severity.LOW


def cell_key(lat: float, lng: float, precision: int = None) -> str:
    if precision is None:
        precision = settings.CELL_PRECISION
    return f"{lat:.{precision}f},{lng:.{precision}f}"


def _checked_point(report: Report) -> tuple:
    location = report.location
    if location is None or not is_valid_coordinate(location.lat, location.lng):
        raise AggregationError(
            f"Report {report.id} has unusable coordinates: {location}",
            report_id=report.id
        )
    return location.lat, location.lng


def valid_reports(reports: List[Report]) -> List[Report]:
    """Drop reports that cannot take part in aggregation."""
    kept = []
    for report in reports:
        try:
            _checked_point(report)
        except AggregationError as e:
            logger.warning(f"Excluded from aggregation: {e}")
            continue
        kept.append(report)
    return kept


def group_by_cell(reports: List[Report], precision: int = None) -> Dict[str, List[Report]]:
    """
    Group reports by rounded coordinate cell.

    Returns an insertion-ordered mapping cell_key -> reports.
    """
    cells: Dict[str, List[Report]] = {}
    for report in valid_reports(reports):
        key = cell_key(report.location.lat, report.location.lng, precision)
        cells.setdefault(key, []).append(report)
    return cells


def find_within_radius(
    reports: List[Report],
    lat: float,
    lng: float,
    radius_km: float = DEFAULT_RADIUS_KM
) -> List[Report]:
    """All reports whose distance from (lat, lng) is <= radius_km."""
    return [
        report for report in valid_reports(reports)
        if haversine_km(lat, lng, report.location.lat, report.location.lng) <= radius_km
    ]


def critical_areas_from(
    reports: List[Report],
    min_reports: int = None,
    precision: int = None
) -> List[Cluster]:
    """
    Cells with at least `min_reports` members, largest first.
    Smaller cells are not surfaced at all.
    """
    if min_reports is None:
        min_reports = settings.CRITICAL_AREA_MIN_REPORTS

    clusters = []
    for key, members in group_by_cell(reports, precision).items():
        if len(members) < min_reports:
            continue
        lat, lng = (float(part) for part in key.split(","))
        clusters.append(Cluster(
            cell_key=key,
            lat=lat,
            lng=lng,
            count=len(members),
            severity=cluster_severity(len(members)),
            reports=members,
        ))

    # Stable sort keeps first-seen order among equal counts
    clusters.sort(key=lambda c: c.count, reverse=True)
    return clusters


class GeoAggregator:
    """
    Store-backed aggregation. Every call works on a fresh snapshot.
    """

    def __init__(self, store: Optional[ReportStore] = None):
        self.store = store or get_report_store()

    async def reports_within_radius(
        self,
        lat: float,
        lng: float,
        radius_km: float = DEFAULT_RADIUS_KM
    ) -> List[Report]:
        reports = await self.store.get_all_reports()
        nearby = find_within_radius(reports, lat, lng, radius_km)
        logger.debug(f"{len(nearby)} reports within {radius_km} km of ({lat}, {lng})")
        return nearby

    async def get_critical_areas(self) -> List[Cluster]:
        reports = await self.store.get_all_reports()
        clusters = critical_areas_from(reports)
        logger.info(f"Found {len(clusters)} critical areas across {len(reports)} reports")
        return clusters


# Global service instance (singleton pattern)
_geo_aggregator = None


def get_geo_aggregator() -> GeoAggregator:
    """
    Get or create GeoAggregator singleton instance.
    """
    global _geo_aggregator
    if _geo_aggregator is None:
        _geo_aggregator = GeoAggregator()
    return _geo_aggregator
