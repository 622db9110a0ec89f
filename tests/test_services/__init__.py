"""
Test Services Package
Tests for the service layer
"""
