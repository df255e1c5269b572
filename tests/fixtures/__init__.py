"""Test fixtures for the reward engine."""
