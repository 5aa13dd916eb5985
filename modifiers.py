from dataclasses import dataclass


@dataclass
class GameModifiers:
    """Tweakable simulation parameters.

    Each world owns its own instance.  Events or policies can modify these
    numbers at runtime to influence how fast zoned parcels develop.
    """

    # Parcel growth, in progress points per tick
    base_growth_rate: float = 5.0
    infrastructure_bonus: float = 5.0
    empty_trickle_rate: float = 0.1   # gated EMPTY parcels only
    growth_jitter: float = 2.0        # total width of the uniform jitter band

    # Mood is 0-100; (mood - neutral) / divisor gives roughly +/-2
    mood_neutral: float = 50.0
    mood_divisor: float = 25.0

    # Slower growth for denser phases
    apartment_growth_factor: float = 0.7
    highrise_growth_factor: float = 0.5

    # Chance that a milestone triggers a narrative message
    announce_chance: float = 0.3
