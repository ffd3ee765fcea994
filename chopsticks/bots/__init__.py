"""
Bots module - Computer opponent.

Provides:
- BotPolicy: Interface for bot decision-making
- RandomPolicy: Uniformly random attacker
"""

from .policy import BotPolicy, BotDecision, RandomPolicy

__all__ = [
    "BotPolicy",
    "BotDecision",
    "RandomPolicy",
]
