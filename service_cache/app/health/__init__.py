"""Backing store health probes."""
