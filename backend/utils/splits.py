"""Split calculation utilities for group expenses."""

from exceptions import ValidationError


def calculate_equal_shares(amount: float, split_among: list[int]) -> dict[int, float]:
    """
    Divide an expense amount equally among its participants.

    The share is computed once, at write time, and persisted with the expense
    so that later changes to the split rule never alter historical expenses.
    """
    if not split_among:
        raise ValidationError("An expense must be split among at least one member")

    share = amount / len(split_among)
    return {user_id: share for user_id in split_among}
