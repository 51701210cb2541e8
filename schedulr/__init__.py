"""
schedulr - Availability and conflict resolution for appointment booking.
"""

__version__ = "0.1.0"
