"""Player color allocation by greedy hue spacing."""

from __future__ import annotations

import colorsys
import random
from dataclasses import dataclass
from typing import Sequence

CANDIDATE_STEP = 5
CLOSE_HUE_DISTANCE = 25
NEIGHBOUR_HUE_DISTANCE = 30

DEFAULT_SATURATION = 70
DEFAULT_LIGHTNESS = 60
SATURATION_RANGE = (45, 90)
LIGHTNESS_RANGE = (40, 75)
SATURATION_SHIFT = 20
LIGHTNESS_SHIFT = 15


@dataclass(frozen=True)
class Color:
    """HSL color with hue in degrees and saturation/lightness in percent."""

    hue: int
    saturation: int
    lightness: int

    def to_hex(self) -> str:
        red, green, blue = colorsys.hls_to_rgb(self.hue / 360, self.lightness / 100, self.saturation / 100)
        return "#{:02X}{:02X}{:02X}".format(round(red * 255), round(green * 255), round(blue * 255))


def parse_color(value: str) -> Color | None:
    """Parse ``#RRGGBB`` into a Color, returning None for anything else."""
    raw = value.strip().removeprefix("#")
    if len(raw) != 6:
        return None
    try:
        red, green, blue = (int(raw[index : index + 2], 16) for index in (0, 2, 4))
    except ValueError:
        return None
    hue, lightness, saturation = colorsys.rgb_to_hls(red / 255, green / 255, blue / 255)
    return Color(
        hue=round(hue * 360) % 360,
        saturation=round(saturation * 100),
        lightness=round(lightness * 100),
    )


def hue_distance(first: int, second: int) -> int:
    delta = abs(first - second) % 360
    return min(delta, 360 - delta)


def allocate(existing_colors: Sequence[Color], rng: random.Random | None = None) -> Color:
    """Return a color whose hue is as far as possible from every existing hue.

    Candidates are scanned every 5 degrees in ascending order, so ties go to
    the lowest hue. When even the best candidate sits closer than 25 degrees
    to a neighbour, saturation and lightness are pushed away from the
    neighbours within 30 degrees to keep the colors tellable apart.
    """
    if not existing_colors:
        source = rng if rng is not None else random
        return Color(hue=source.randrange(360), saturation=DEFAULT_SATURATION, lightness=DEFAULT_LIGHTNESS)

    best_hue = 0
    best_distance = -1
    for hue in range(0, 360, CANDIDATE_STEP):
        distance = min(hue_distance(hue, color.hue) for color in existing_colors)
        if distance > best_distance:
            best_hue = hue
            best_distance = distance

    if best_distance >= CLOSE_HUE_DISTANCE:
        return Color(hue=best_hue, saturation=DEFAULT_SATURATION, lightness=DEFAULT_LIGHTNESS)

    neighbours = [color for color in existing_colors if hue_distance(best_hue, color.hue) <= NEIGHBOUR_HUE_DISTANCE]
    average_saturation = sum(color.saturation for color in neighbours) / len(neighbours)
    average_lightness = sum(color.lightness for color in neighbours) / len(neighbours)
    return Color(
        hue=best_hue,
        saturation=_push_away(average_saturation, SATURATION_SHIFT, SATURATION_RANGE),
        lightness=_push_away(average_lightness, LIGHTNESS_SHIFT, LIGHTNESS_RANGE),
    )


def _push_away(average: float, shift: int, bounds: tuple[int, int]) -> int:
    low, high = bounds
    # Move toward whichever bound leaves more room.
    if high - average >= average - low:
        target = average + shift
    else:
        target = average - shift
    return round(min(high, max(low, target)))
