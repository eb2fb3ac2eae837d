"""
tstune - TimescaleDB tuning CLI.

Tunes a PostgreSQL server's postgresql.conf for TimescaleDB, keeping
every line it does not need to change exactly as it was.
"""

__version__ = "0.18.0"
__author__ = "tstune Team"
