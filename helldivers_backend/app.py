# module helldivers_backend.app
import logging
import os

from helldivers_backend.app_setup.factory import create_app

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "info").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# App globale
app = create_app()
