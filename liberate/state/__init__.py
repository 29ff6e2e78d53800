"""Run state persistence."""
