"""Ability-score rolling (4d6, drop the lowest die)."""

import random

ABILITIES = ("strength", "dexterity", "constitution", "intelligence", "wisdom", "charisma")


def roll_ability_score(rng: random.Random | None = None) -> int:
    rng = rng or random.Random()
    rolls = sorted((rng.randint(1, 6) for _ in range(4)), reverse=True)
    return sum(rolls[:3])


def roll_ability_scores(rng: random.Random | None = None) -> dict[str, int]:
    """One score per ability, each in the range 3..18."""
    rng = rng or random.Random()
    return {ability: roll_ability_score(rng) for ability in ABILITIES}
