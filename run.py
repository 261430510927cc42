#!/usr/bin/env python3
"""Convenience runner for the gravel route planner.

Usage:
    python run.py measure ride.gpx
"""
import logging
from gravel_route.main import main

if __name__ == "__main__":
    if not logging.getLogger().hasHandlers():
        logging.basicConfig(level=logging.INFO, format="[%(asctime)s] %(levelname)s %(name)s: %(message)s")
    raise SystemExit(main())
