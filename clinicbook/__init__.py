"""
Clinicbook

A FastAPI-based appointment booking backend for patients, doctors and
administrators, with token authentication and conflict-free slot booking.
"""

__version__ = "1.0.0"
