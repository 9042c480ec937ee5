"""The catalog of locations a round can take place in."""

import random
from typing import Sequence

# Keys, not display text.  Clients translate them.
LOCATIONS = (
    'airplane',
    'bank',
    'beach',
    'casino',
    'cathedral',
    'circus',
    'corporate_party',
    'crusader_army',
    'day_spa',
    'embassy',
    'hospital',
    'hotel',
    'military_base',
    'movie_studio',
    'ocean_liner',
    'passenger_train',
    'pirate_ship',
    'polar_station',
    'police_station',
    'restaurant',
    'school',
    'service_station',
    'space_station',
    'submarine',
    'supermarket',
    'theater',
    'university',
    'world_war_ii_squad',
)


def get_random_location(rng=None, catalog: Sequence[str] = LOCATIONS) -> str:
    """Pick a location uniformly at random from the catalog."""
    if not catalog:
        raise ValueError("Location catalog is empty")
    rng = rng or random
    return rng.choice(list(catalog))
