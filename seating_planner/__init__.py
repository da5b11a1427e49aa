"""
Wedding seating planner: guests, tables and room layouts kept consistent
"""

__version__ = "1.0.0"
