"""Seat classification, preference scoring and recommendations."""
