"""
Tidewatch: marine and river water conditions from NOAA NDBC buoys and USGS
Water Services.
"""

__version__ = "0.1.0"
