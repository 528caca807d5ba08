"""File storage backends, PostgreSQL data models and health checks for a mod-hosting backend."""

__version__ = "0.1.0"