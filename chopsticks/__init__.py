"""
Chopsticks - Two-player finger counting game engine.

A deterministic rule engine with a replicated turn protocol on top:
- Pure state transitions for attacks, splits and victory
- Turn clock with timeout strikes
- Rock/paper/scissors pre-match arbitration
- Room matchmaking over a shared state store
- Snapshot synchronization between two clients
"""

__version__ = "0.1.0"
