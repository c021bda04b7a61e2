"""Módulo de configuración de la API de finanzas personales.

Proporciona lectura de variables de entorno (con soporte para un archivo
.env local) y agrupa los parámetros de seguridad, base de datos, logging y
del asistente de IA.
"""

import os
from pathlib import Path
from functools import lru_cache
from dotenv import load_dotenv

DEFAULT_JWT_SECRET = 'dev-secret-change'

# get_settings: Devuelve (cacheado) la instancia única de Settings.
@lru_cache
def get_settings():
    return Settings()

class Settings:
    """Agrupa todos los parámetros de configuración usados en la aplicación.

    Se inicializa leyendo variables de entorno. Los argumentos con nombre
    sobreescriben cualquier valor leído (útil en pruebas).
    """
    def __init__(self, **overrides):
        # Cargar .env local (aislado al directorio del módulo)
        base_dir = Path(__file__).resolve().parent
        load_dotenv(base_dir / '.env')

        default_db_path = base_dir / 'prosperity.db'
        self.database_url = os.getenv('DATABASE_URL', f"sqlite:///{default_db_path}")
        self.jwt_secret = os.getenv('JWT_SECRET', DEFAULT_JWT_SECRET)
        self.jwt_algorithm = os.getenv('JWT_ALG', 'HS256')
        self.jwt_exp_days = int(os.getenv('JWT_EXP_DAYS', '7'))
        self.bcrypt_rounds = int(os.getenv('BCRYPT_ROUNDS', '10'))
        self.default_currency = os.getenv('DEFAULT_CURRENCY', 'USD').upper()
        self.service_name = os.getenv('SERVICE_NAME', 'prosperity-compass-backend')

        # Asistente de IA (opcional): si no hay URL se responde localmente.
        self.ai_chat_url = os.getenv('AI_CHAT_URL', '').strip()
        self.request_timeout = float(os.getenv('REQUEST_TIMEOUT', '3'))
        self.max_retries = int(os.getenv('REQUEST_RETRIES', '2'))

        self.log_level = os.getenv('LOG_LEVEL', 'INFO').upper()
        self.log_format = os.getenv('LOG_FORMAT', 'text').lower()
        self.port = int(os.getenv('PORT', '4000'))

        for key, value in overrides.items():
            if not hasattr(self, key):
                raise AttributeError(f"Unknown setting: {key}")
            setattr(self, key, value)

    @property
    def using_default_secret(self) -> bool:
        return self.jwt_secret == DEFAULT_JWT_SECRET
