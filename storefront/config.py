import os
from datetime import timedelta
from typing import Dict


def from_env() -> Dict[str, object]:
    """Monta a config do Flask a partir das variáveis de ambiente.

    O `run.py` carrega o .env antes de importar o pacote, então isto roda
    depois do dotenv preencher o os.environ.
    """
    return {
        "PORT": int(os.environ.get("PORT", 3000)),
        # Sem validação: ausência do segredo é problema de deploy
        "SECRET_KEY": os.environ.get("SESSION_SECRET"),
        "MONGO_URI": os.environ.get("MONGO_URI", "mongodb://localhost:27017/storefront"),
        "ENVIRONMENT": os.environ.get("FLASK_ENV", "development"),
        "LOG_LEVEL": os.environ.get("LOG_LEVEL", "INFO"),
        "SESSION_TYPE": "mongodb",
        "SESSION_MONGODB_DB": "storefront",
        "SESSION_MONGODB_COLLECT": "sessions",
        "SESSION_PERMANENT": True,
        "PERMANENT_SESSION_LIFETIME": timedelta(hours=3),
    }
