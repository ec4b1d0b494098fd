"""Service layer for the claims analytics core."""
