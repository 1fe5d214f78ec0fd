"""CORS middleware configuration"""
from fastapi.middleware.cors import CORSMiddleware
from quoteform.config import get_settings


def setup_cors(app):
    """
    Configure CORS for the authoring UI

    Content-Disposition is exposed so the UI can read artifact file names.
    """
    settings = get_settings()
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Content-Disposition"],
    )
