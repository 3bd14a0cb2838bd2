"""Greedy grouping of independent travel needs into group trips.

Single pass, first match: a need joins the first cluster with the same
destination city whose first departure date is within the window, even when
a later cluster would fit better. Re-running always starts from scratch.
"""

from typing import List

from teamtravel.types import TravelNeed, TravelGroup

DATE_WINDOW_DAYS = 2


def cluster_key(need: TravelNeed) -> str:
    return f"{need.destination_city.strip().lower()}_{need.departure_date.isoformat()}"


def cluster_travel_needs(needs: List[TravelNeed], window_days: int = DATE_WINDOW_DAYS) -> List[TravelGroup]:
    clusters: List[List[TravelNeed]] = []
    for need in needs:
        city = need.destination_city.strip().lower()
        for members in clusters:
            head = members[0]
            if (head.destination_city.strip().lower() == city
                    and abs((head.departure_date - need.departure_date).days) <= window_days):
                members.append(need)
                break
        else:
            clusters.append([need])

    groups = []
    for members in clusters:
        if len({n.user_id for n in members}) < 2:
            continue
        head = members[0]
        groups.append(TravelGroup(
            key=cluster_key(head),
            destination_city=head.destination_city,
            departure_date=head.departure_date,
            needs=members,
        ))
    return groups
