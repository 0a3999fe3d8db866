"""
Restaurant catalog.

Responsibilities:
- Load the place catalog into memory.
- Filter places by halal status, price tier, area, tags, cuisine and distance.
- Cache query results with a TTL.
"""
