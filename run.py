#!/usr/bin/env python3
"""Entry point for running the reminder system as a module."""

import sys

from recurring_reminders.cli import main

if __name__ == "__main__":
    sys.exit(main())
