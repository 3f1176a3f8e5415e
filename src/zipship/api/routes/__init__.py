"""Route handlers for the API."""

from zipship.api.routes import credits, deploys, github, health

__all__ = [
    "credits",
    "deploys",
    "github",
    "health",
]
