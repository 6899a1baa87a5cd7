"""Database interface and repository abstractions.

This package holds the feature repository protocol with its PostgreSQL and
in-memory implementations (``featuremap.db.database``) and the data models
they exchange with the query builder and the routes
(``featuremap.db.models``).

Example:
    Use in a service or FastAPI dependency:
        >>> from featuremap.db import database
        >>> repo = database.get_feature_repository(settings)
"""
