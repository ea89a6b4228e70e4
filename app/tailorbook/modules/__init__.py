"""
Feature modules live under this package.

Each module owns its models/service/routes and reuses the platform
primitives (activity trail, storage, DB session).
"""
