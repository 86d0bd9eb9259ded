from dataclasses import dataclass
from typing import Dict, Any, List, Optional, Tuple
import logging
import math


logger = logging.getLogger(__name__)


# --- Method constants (Tetsu Kasuya 4:6) ---
FIRST_PHASE_SHARE = 0.4   # sweetness / acidity balance
SECOND_PHASE_SHARE = 0.6  # strength
POUR_WINDOW_S = 45        # seconds between pours

TASTE_PROFILES = ("standard", "sweet", "bright")
STRENGTHS = ("light", "strong", "stronger")

FIRST_PHASE_SPLITS = {
    "standard": (0.5, 0.5),
    "sweet": (0.42, 0.58),    # smaller first pour -> sweeter cup
    "bright": (0.58, 0.42),   # larger first pour -> brighter cup
}

SECOND_PHASE_POURS = {
    "light": 1,
    "strong": 2,
    "stronger": 3,
}


# --- Input limits & defaults ---
RATIO_MIN = 13
RATIO_MAX = 19
COFFEE_MAX_G = 1000.0
RECOMMENDED_MIN_COFFEE_G = 6

DEFAULT_COFFEE_G = 20.0
DEFAULT_RATIO = 15
DEFAULT_TASTE_PROFILE = "standard"
DEFAULT_STRENGTH = "strong"


METHOD_NOTES = (
    "The 4:6 method is a pour-over technique developed by 2016 World Brewers Cup "
    "Champion Tetsu Kasuya. It divides the total brewing water into two phases: "
    "40% for the first phase and 60% for the second phase, giving you control over "
    "both the flavor and the strength of your coffee.",
    "The first phase (40% of the water) controls the balance between sweetness and "
    "acidity. A smaller first pour creates a sweeter cup, a larger first pour "
    "emphasizes brightness. For a balanced cup, use equal pours.",
    "The second phase (the remaining 60%) determines strength. A single pour gives "
    "a lighter body, two pours a stronger cup, and three pours the most intense flavor.",
)


@dataclass(frozen=True)
class BrewParameters:
    coffee_g: float
    ratio: int                # water : coffee, 15 -> 1:15
    taste_profile: str        # "standard" | "sweet" | "bright"
    strength: str             # "light" | "strong" | "stronger"


@dataclass(frozen=True)
class PourStep:
    index: int                # 0 = bloom pour
    amount_g: int
    cumulative_g: int

    @property
    def is_bloom(self) -> bool:
        return self.index == 0

    @property
    def start_s(self) -> int:
        return self.index * POUR_WINDOW_S


@dataclass(frozen=True)
class PourSchedule:
    total_water_g: float
    pours: Tuple[PourStep, ...]
    first_phase_count: int = 2

    @property
    def total_steps(self) -> int:
        return len(self.pours)

    @property
    def first_pours(self) -> List[int]:
        return [p.amount_g for p in self.pours[:self.first_phase_count]]

    @property
    def second_pours(self) -> List[int]:
        return [p.amount_g for p in self.pours[self.first_phase_count:]]

    def as_rows(self) -> List[Dict[str, Any]]:
        """
        Plain rows for a table widget (one per pour).
        """
        return [
            {
                "time": format_time(p.start_s),
                "pour": p.index + 1,
                "add_g": p.amount_g,
                "total_g": p.cumulative_g,
            }
            for p in self.pours
        ]


def _clamp(x: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, x))


def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def _check_taste_profile(value: str) -> str:
    t = value.lower().strip()
    if t not in FIRST_PHASE_SPLITS:
        raise ValueError("taste_profile must be: standard, sweet, or bright")
    return t


def _check_strength(value: str) -> str:
    s = value.lower().strip()
    if s not in SECOND_PHASE_POURS:
        raise ValueError("strength must be: light, strong, or stronger")
    return s


def clamp_parameters(
    coffee_g: Optional[float],
    ratio: float,
    taste_profile: str,
    strength: str,
) -> BrewParameters:
    """
    Turn raw form values into BrewParameters.
    Mass and ratio are clamped into range; an empty mass field counts as 0 g.
    Unknown taste profile / strength still raise ValueError.
    """
    mass = 0.0 if coffee_g is None else _clamp(float(coffee_g), 0.0, COFFEE_MAX_G)
    r = int(_clamp(_round_half_up(float(ratio)), RATIO_MIN, RATIO_MAX))

    return BrewParameters(
        coffee_g=mass,
        ratio=r,
        taste_profile=_check_taste_profile(taste_profile),
        strength=_check_strength(strength),
    )


def compute_schedule(params: BrewParameters) -> PourSchedule:
    taste = _check_taste_profile(params.taste_profile)
    strength = _check_strength(params.strength)

    total_water = params.coffee_g * params.ratio
    first_phase = total_water * FIRST_PHASE_SHARE
    second_phase = total_water * SECOND_PHASE_SHARE

    first_pours = [first_phase * share for share in FIRST_PHASE_SPLITS[taste]]

    n = SECOND_PHASE_POURS[strength]
    second_pours = [second_phase / n] * n

    # Each pour is rounded on its own; drift between steps is not corrected.
    amounts = [_round_half_up(g) for g in first_pours + second_pours]

    pours: List[PourStep] = []
    running = 0
    for i, amount in enumerate(amounts):
        running += amount
        pours.append(PourStep(index=i, amount_g=amount, cumulative_g=running))

    logger.debug(
        "Schedule for %sg @ 1:%s (%s/%s): %s",
        params.coffee_g, params.ratio, taste, strength, amounts,
    )

    return PourSchedule(
        total_water_g=total_water,
        pours=tuple(pours),
        first_phase_count=len(first_pours),
    )


def format_time(seconds: float) -> str:
    s = max(0, int(seconds))
    return f"{s // 60}:{s % 60:02d}"


def step_instruction(step: PourStep) -> str:
    if step.is_bloom:
        return f"Bloom with {step.amount_g}g"
    return f"Add up to {step.cumulative_g}g water"
