"""Firebase Admin SDK initialisation."""
from __future__ import annotations

import logging

import firebase_admin
from firebase_admin import credentials

from votebox.core.config import Settings

logger = logging.getLogger(__name__)

FIREBASE_APP_NAME = "votebox"


def get_firebase_app(settings: Settings) -> firebase_admin.App:
    """Return the named Firebase app, initialising it on first use."""

    try:
        return firebase_admin.get_app(FIREBASE_APP_NAME)
    except ValueError:
        pass

    if settings.firebase_credentials_path:
        credential = credentials.Certificate(settings.firebase_credentials_path)
    else:
        credential = credentials.ApplicationDefault()

    options = {"projectId": settings.firebase_project_id} if settings.firebase_project_id else None
    app = firebase_admin.initialize_app(credential, options=options, name=FIREBASE_APP_NAME)
    logger.info("Initialised Firebase app for project %s", app.project_id)
    return app


__all__ = ["FIREBASE_APP_NAME", "get_firebase_app"]
