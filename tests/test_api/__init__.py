"""
Test API Package
Tests for the HTTP routers
"""
