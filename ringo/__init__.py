"""
Ringo - Card Game Engine with AI Opponents

A deterministic rules engine for the Ringo shedding game. It provides:
- Deck, hand and play validation
- A pure reducer over immutable game state
- Per-seat projections that never leak hidden cards
- Four bot tiers, up to determinized search
- In-memory rooms and an HTTP API
"""

__version__ = "0.1.0"
