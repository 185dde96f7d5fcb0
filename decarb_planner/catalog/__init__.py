"""
Reference data loading: measure catalog, funding catalog, company profiles.

All loaders validate every record through the pydantic models and raise
``CatalogError`` / ``InvalidProfileError`` rather than returning partial data.
"""
