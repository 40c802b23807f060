"""Shared helpers for the export forecaster."""
