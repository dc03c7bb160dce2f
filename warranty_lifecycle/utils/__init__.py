"""Utility modules: log buffer, date formatting, report output."""
