"""
ShuttleCoach API
================

Badminton coaching service:
- Player and coach profiles
- Coach discovery
- Video collection sharing
- Coaching notes
"""

__version__ = "1.0.0"
