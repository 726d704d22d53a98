"""Utility helpers: stage monitoring."""
