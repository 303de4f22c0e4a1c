"""
Core modules for PRD Forge.

This package contains prompt building, generation tracking, free-tier
limits, analytics aggregation, story parsing and batch export.
"""
