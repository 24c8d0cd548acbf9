"""Utilities for canvasedit."""
