"""Household budget period and reporting backend."""
