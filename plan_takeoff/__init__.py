# Plan takeoff: quantities and estimates from traced floor plans

__version__ = "1.0.0"
