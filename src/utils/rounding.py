"""Half-up rounding shared by scores and money amounts."""

import math


def round_half_up(value: float) -> int:
    """Round to the nearest integer, ties away from zero for positive values.

    2.5 -> 3 and 32.5 -> 33, where built-in round() would give 2 and 32.
    """
    return int(math.floor(value + 0.5))
