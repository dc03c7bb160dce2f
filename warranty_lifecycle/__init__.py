"""
Warranty Lifecycle Engine
=========================
Warranty lookup, reconciliation and lifecycle reporting for managed devices.
"""

__version__ = "0.1.0"
