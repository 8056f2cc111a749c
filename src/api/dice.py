"""Dice endpoints."""

from fastapi import APIRouter

from src.services.dice import roll_ability_scores

router = APIRouter(prefix="/api/v1/dice", tags=["dice"])


@router.get("/ability-scores")
def roll_scores():
    """Roll a fresh set of ability scores (4d6, drop lowest)."""
    return {"method": "4d6-drop-lowest", "scores": roll_ability_scores()}
