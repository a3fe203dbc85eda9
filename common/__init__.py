"""Shared settings, types, errors and logging for the solar proxy."""
