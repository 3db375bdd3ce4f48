"""
FILE: nextup/core/constants.py
PURPOSE: Constants used throughout the application
EXPORTS:
  - SYSTEM_LISTS: All stored system list values
  - DEFAULT_SYSTEM_LIST: Default list for new tasks
  - VIEW_UPCOMING: Name of the computed Upcoming view
  - STATUS_OPEN / STATUS_DONE: Task status values
  - STATUS_FILTERS: Valid values for the status filter
  - DEFAULT_UPCOMING_DAYS: Default Upcoming horizon
  - field limits (MAX_NAME_LENGTH, MAX_DESCRIPTION_LENGTH, PRIORITY_MIN, PRIORITY_MAX)
DEPENDENCIES:
  - None (stdlib only)
NOTES:
  - Centralized constants to avoid magic strings
  - "upcoming" is a view name, never a stored system list
"""

# System list constants (stored workflow buckets)
LIST_INBOX = "inbox"
LIST_NEXT = "next"
LIST_SOMEDAY = "someday"
SYSTEM_LISTS = (LIST_INBOX, LIST_NEXT, LIST_SOMEDAY)
DEFAULT_SYSTEM_LIST = LIST_INBOX

# Computed views
VIEW_UPCOMING = "upcoming"
VIEW_ARCHIVED = "archived"

# Task status constants
STATUS_OPEN = "open"
STATUS_DONE = "done"
TASK_STATUSES = (STATUS_OPEN, STATUS_DONE)

# Status filter values (views)
FILTER_ALL = "all"
STATUS_FILTERS = (STATUS_OPEN, STATUS_DONE, FILTER_ALL)

# Upcoming projection
DEFAULT_UPCOMING_DAYS = 14

# Field limits
MAX_NAME_LENGTH = 500
MAX_DESCRIPTION_LENGTH = 4000
MAX_LABEL_NAME_LENGTH = 100
MAX_PROJECT_NAME_LENGTH = 100
PRIORITY_MIN = 1
PRIORITY_MAX = 4
