"""
Test Actions Package
Tests for the adherence engines (reconciler, reminders, insights, dispatcher)
"""
