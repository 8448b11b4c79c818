"""HTTP API blueprints."""

from flask import current_app

from eduadmin.services.entity_service import EntityService


def get_service() -> EntityService:
    """The app's ``EntityService`` (installed by ``create_app``)."""
    return current_app.extensions["eduadmin"]
