"""API router subpackage for the feature query service.

Submodules:
    - features: GeoJSON endpoints for the blocks and buildings tables and
      their debug stats.
    - system: Banner, database health check and connection diagnostics.

Routers are grouped by feature domain to promote clarity and independent
testing.
"""
