"""tstune commands."""
