"""Tuning services: recommendations, discovery, backups and the tuner itself."""
