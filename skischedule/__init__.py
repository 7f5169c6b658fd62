"""
skischedule - a ski coach's calendar of lessons, practice and training.

See skischedule/cli.py for the command line, skischedule/events.py for the
event store.
"""

__version__ = "0.1.0"
