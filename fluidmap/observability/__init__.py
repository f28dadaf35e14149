"""Logging and metrics for fluidmap."""
