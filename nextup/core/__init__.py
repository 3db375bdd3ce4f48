"""
FILE: nextup/core/__init__.py
PURPOSE: Task engine (views, upcoming projection, lifecycle, ordering) and its SQLite store
NOTES:
  - Kept import-free; nextup.config imports nextup.core.constants
"""
