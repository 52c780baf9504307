"""Sinks that accept runtime points."""
