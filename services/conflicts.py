from services import reservation_store
from services.lifecycle import ACTIVE_STATUSES


def overlaps(a_start, a_end, b_start, b_end) -> bool:
    # closed intervals: touching endpoints count as overlap
    return a_start <= b_end and a_end >= b_start


def has_conflict(vehicle_id, start_date, end_date) -> bool:
    """
    True when an active (pending/confirmed) reservation of the vehicle
    overlaps [start_date, end_date]. Completed and cancelled rows never block.
    """
    rows = reservation_store.find_by_vehicle_and_status(
        vehicle_id, ACTIVE_STATUSES, overlapping=(start_date, end_date)
    )
    return any(overlaps(r.start_date, r.end_date, start_date, end_date) for r in rows)
