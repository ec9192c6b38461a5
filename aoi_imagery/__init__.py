"""AOI Imagery Client.

Turns an area of interest (hand drawn on a map widget, or uploaded as
KML, GeoJSON or a ZIP archive) into a normalised geometry and bounding
box, and requests a rendered satellite image for that area from the
Sentinel Hub Process API.
"""

__version__ = "0.1.0"
