"""
Test suite for Clinicbook.

Contains unit and integration tests for booking, slots, users and auth.
"""
import os

# Set environment for testing
os.environ["TESTING"] = "1"
