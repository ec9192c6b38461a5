"""Activity functions.

Each activity performs a single unit of work for the session:
- compute_bounds: Reduce rings to bounding boxes, geodesic area
- validate_geometry: Per-polygon coordinate, ring and validity checks
- parse_kml / parse_geojson: Extract polygon features from uploads
- load_aoi: Draw, single-file and archive AOI input channels
- fetch_imagery: Build the Process API request and render imagery
"""
