"""
Test Tools Package
Tests for the tools module (time slots, email, storage)
"""
