"""
Package entry point.

Allows running the application via:

    python -m skischedule

This simply forwards execution to skischedule.cli.main().
"""

from skischedule.cli import main

if __name__ == "__main__":
    main()
