"""
League History

Season dominance scoring (SDS+) and cached season data for a long-running
fantasy football league.
"""

__version__ = "1.0.0"
