from typing import List
import logging

import helldivers_backend.config as config
from helldivers_backend.errors import ConfigurationError

logger = logging.getLogger(__name__)

def missing_configuration() -> List[str]:
    # Lecture à l'appel: les tests modifient config.* via monkeypatch
    missing = []
    if not config.STRIPE_SECRET_KEY:
        missing.append("STRIPE_SECRET_KEY")
    if not config.SUPABASE_URL:
        missing.append("SUPABASE_URL")
    if not config.SUPABASE_SERVICE_KEY:
        missing.append("SUPABASE_SERVICE_KEY")
    return missing

def require_configuration() -> None:
    """
    Dépendance FastAPI des routes de paiement: vérifie les secrets avant toute logique métier.
    - Lève ConfigurationError (500) en listant les variables manquantes.
    """
    missing = missing_configuration()
    if missing:
        logger.error("Missing required environment variables: %s", ", ".join(missing))
        raise ConfigurationError(f"Missing required environment variables: {', '.join(missing)}")
