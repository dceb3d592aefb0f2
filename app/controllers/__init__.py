"""FastAPI routers acting as controllers in the MVC architecture."""

from . import health, questionnaire

__all__ = ["health", "questionnaire"]
