"""
Half-up rounding matching PostgreSQL's ROUND(numeric).

Python's round() rounds halves to even, so 1800.5 would become 1800 locally
while the aggregation procedures store 1801.
"""

from decimal import ROUND_HALF_UP, Decimal


def round_half_up(value: float, places: int = 0) -> float:
    # repr() keeps the shortest decimal form, as float8 -> numeric does
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def round_seconds(value: float) -> int:
    return int(round_half_up(value))
