"""
eventwatch - merges seismic, GDELT and outlet RSS feeds into one ranked,
geolocated and cross-source-correlated event stream.
"""

__version__ = "0.1.0"
