"""Session orchestration.

Wires the AOI input channels and the imagery request builder into one
interactive session:
1. Draw / upload → current AOI
2. Fetch → rendered image for the AOI, time range and evalscript
3. Apply → only the latest dispatched fetch reaches the display
"""
