"""
Session Module - Runs matches for one client.

A session represents one client's seat at a match:
- Created when the player starts a local game or enters a room
- Drives the rule engine, the turn clock, the computer opponent,
  janken arbitration and store synchronization
- Destroyed when the player leaves; its timers die with it

Sessions are EPHEMERAL: nothing outlives the process except the
shared room record, which is deleted on leave.
"""

from .manager import SessionManager, Session, SessionState
from .game_loop import MatchLoop, MatchView, LoopState
from .turn_clock import TurnClock
from .arbiter import JankenArbiter
from .timers import TimerScope, TimerHandle

__all__ = [
    "SessionManager",
    "Session",
    "SessionState",
    "MatchLoop",
    "MatchView",
    "LoopState",
    "TurnClock",
    "JankenArbiter",
    "TimerScope",
    "TimerHandle",
]
