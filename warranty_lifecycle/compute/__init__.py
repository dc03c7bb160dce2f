"""Compute Package - deterministic warranty status and report calculations."""
