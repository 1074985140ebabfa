"""
Barbershop booking backend: availability, booking rules and commission payouts
"""

__version__ = "1.0.0"
