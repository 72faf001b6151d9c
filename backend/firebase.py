"""
Lazy Firebase Admin initialization shared by Firestore, Storage and Auth.
"""

from __future__ import annotations

import logging
import threading

import firebase_admin
from firebase_admin import credentials

from backend.config import get_settings

logger = logging.getLogger(__name__)

_init_lock = threading.Lock()


def get_firebase_app() -> firebase_admin.App:
    """
    Return the default Firebase app, initializing it on first use.

    Uses the service account file from FIREBASE_CREDENTIALS_PATH when set,
    otherwise Application Default Credentials.
    """
    with _init_lock:
        try:
            return firebase_admin.get_app()
        except ValueError:
            pass

        settings = get_settings()
        options = {}
        if settings.firebase_project_id:
            options["projectId"] = settings.firebase_project_id
        if settings.firebase_storage_bucket:
            options["storageBucket"] = settings.firebase_storage_bucket

        if settings.firebase_credentials_path:
            cred = credentials.Certificate(settings.firebase_credentials_path)
        else:
            cred = credentials.ApplicationDefault()

        app = firebase_admin.initialize_app(cred, options or None)
        logger.info(
            "Firebase app initialized (project=%s, bucket=%s)",
            settings.firebase_project_id,
            settings.firebase_storage_bucket,
        )
        return app
