"""
nextup - terminal task manager with Inbox, Next, Someday and a computed Upcoming view.
"""

__version__ = "0.4.0"
