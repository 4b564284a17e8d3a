"""Shared helpers used across the work queue packages."""
