"""
Canonical pair keys for undirected user relationships.

Every accumulator, repository mapping, and SQL procedure orders a pair by
plain string comparison so (A, B) and (B, A) always land on one record.
"""


def canonical_pair(user_a: str, user_b: str) -> tuple[str, str]:
    """Return (lo, hi) sorted lexicographically. Raises ValueError for a self-pair."""
    if user_a == user_b:
        raise ValueError(f"A pair needs two distinct users, got {user_a!r} twice")
    if user_a < user_b:
        return user_a, user_b
    return user_b, user_a


def pair_key(user_a: str, user_b: str) -> str:
    lo, hi = canonical_pair(user_a, user_b)
    return f"{lo}:{hi}"


def other_participant(user_id_lo: str, user_id_hi: str, viewer_id: str) -> str:
    """Return the counterpart of `viewer_id` in a stored pair."""
    if viewer_id == user_id_lo:
        return user_id_hi
    if viewer_id == user_id_hi:
        return user_id_lo
    raise ValueError(f"User {viewer_id!r} is not part of pair {user_id_lo}:{user_id_hi}")
