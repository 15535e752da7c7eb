"""Activity labelling: guess what happened at each place, and a theme for the session.

A cluster's activity comes from the geocoder's place type when it names a
known kind of venue, otherwise from the local hour it started. Clusters on a
registered place use the place's role instead. A session gets a theme when one
activity accounts for at least 40% of its places.
"""

import collections
import datetime
import logging
from typing import Iterable, Optional

from domain import ActivityType, PlaceRole

logger = logging.getLogger(__name__)

# Checked in order; the first keyword found in the place type wins
PLACE_TYPE_KEYWORDS = (
    (ActivityType.CAFE, ("cafe", "coffee")),
    (ActivityType.RESTAURANT, ("restaurant", "food")),
    (ActivityType.BEACH, ("beach", "sea")),
    (ActivityType.MOUNTAIN, ("mountain", "trail", "hiking")),
    (ActivityType.AIRPORT, ("airport",)),
    (ActivityType.CULTURE, ("museum", "gallery", "theater", "culture")),
    (ActivityType.SHOPPING, ("mall", "shop", "store", "shopping")),
    (ActivityType.TOURIST, ("tourist", "park", "temple", "landmark")),
)

THEME_MIN_SHARE = 0.4

THEMES = {
    ActivityType.CAFE: "cafe tour",
    ActivityType.RESTAURANT: "food trip",
    ActivityType.BEACH: "seaside trip",
    ActivityType.MOUNTAIN: "nature retreat",
    ActivityType.NATURE: "nature retreat",
    ActivityType.CULTURE: "culture trip",
    ActivityType.TOURIST: "culture trip",
    ActivityType.SHOPPING: "shopping trip",
    ActivityType.NIGHTLIFE: "night out",
}


def _activity_for_hour(hour: int) -> ActivityType:
    if 6 <= hour <= 11:
        return ActivityType.CAFE
    if 12 <= hour <= 14 or 18 <= hour <= 21:
        return ActivityType.RESTAURANT
    if 15 <= hour <= 17:
        return ActivityType.TOURIST
    return ActivityType.OTHER


def infer_activity(place_type: Optional[str], local_time: datetime.datetime) -> ActivityType:
    """Activity from a place type such as ``"coffee_shop"``, else from the hour."""
    if place_type:
        kind = place_type.lower()
        for activity, keywords in PLACE_TYPE_KEYWORDS:
            if any(k in kind for k in keywords):
                return activity
    return _activity_for_hour(local_time.hour)


def infer_registered_activity(role: PlaceRole, local_time: datetime.datetime) -> ActivityType:
    """Home at night is rest; any other time at a registered place is just a visit."""
    if role == PlaceRole.HOME and (local_time.hour >= 22 or local_time.hour < 6):
        return ActivityType.ACCOMMODATION
    return ActivityType.OTHER


def session_theme(activities: Iterable[Optional[ActivityType]]) -> Optional[str]:
    labelled = [a for a in activities if a is not None]
    if not labelled:
        return None
    top, count = collections.Counter(labelled).most_common(1)[0]
    if count / len(labelled) < THEME_MIN_SHARE:
        return None
    theme = THEMES.get(top)
    logger.debug("Top activity %s (%d of %d) -> theme %s", top.value, count, len(labelled), theme)
    return theme
