"""
                Table Orders Service

Restaurant order workflow backend: tables, a product catalog with stock
counts, and orders that keep stock and per-table occupancy consistent
under concurrent requests.

Version: 1.0.0
License: MIT
"""

__version__ = "1.0.0"
