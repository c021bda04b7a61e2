"""Asistente "Prosperity Coach" (stub público).

Si hay un servicio externo configurado (AI_CHAT_URL) se le reenvía el mensaje
con reintentos; si no, o si falla, se responde con un consejo local.
"""

import time
import requests
from logging_config import get_logger

logger = get_logger(__name__)

# Consejos locales por palabra clave (se usa el primero que coincida).
TIPS = [
    (('50/30/20', '50-30-20'),
     "The 50/30/20 budget puts 50% of take-home pay toward needs, 30% toward wants "
     "and 20% toward savings and extra debt payments."),
    (('emergency',),
     "Aim for an emergency fund covering three to six months of essential expenses, "
     "kept in an easy-to-reach savings account."),
    (('debt', 'loan', 'credit card'),
     "List your debts by interest rate and pay extra on the highest rate first "
     "(avalanche), or on the smallest balance first if quick wins keep you going (snowball)."),
    (('save', 'saving'),
     "Automate savings: schedule a transfer on payday so the money moves before you can spend it."),
    (('budget',),
     "Start a budget by tracking a month of transactions, then group them into categories "
     "and set a limit for each one."),
]
DEFAULT_TIP = ("Track every transaction for a month, then look for one category "
               "you can trim by 10%. Small consistent changes add up.")

class CoachService:
    """Responde mensajes del usuario con consejos de finanzas personales."""
    def __init__(self, url: str = '', timeout: float = 3, max_retries: int = 2):
        self.url = url.rstrip('/')
        self.timeout = timeout
        self.max_retries = max_retries

    # local_reply: Consejo determinista basado en palabras clave.
    @staticmethod
    def local_reply(message: str) -> str:
        text = message.lower()
        for keywords, tip in TIPS:
            if any(k in text for k in keywords):
                return tip
        return DEFAULT_TIP

    # _remote_reply: Reenvía al servicio externo con reintentos; None si no hay respuesta útil.
    def _remote_reply(self, message: str):
        last_error = None
        for attempt in range(self.max_retries + 1):
            try:
                resp = requests.post(self.url, json={'message': message}, timeout=self.timeout)
                resp.raise_for_status()
                reply = resp.json().get('reply')
                if isinstance(reply, str) and reply.strip():
                    return reply
                last_error = 'empty reply'
                break
            except (requests.RequestException, ValueError, AttributeError) as e:
                last_error = str(e)
                if attempt < self.max_retries:
                    time.sleep(0.2 * (attempt + 1))
        logger.warning("AI upstream unavailable, using local reply: %s", last_error)
        return None

    def reply(self, message: str) -> str:
        if self.url:
            remote = self._remote_reply(message)
            if remote is not None:
                return remote
        return self.local_reply(message)
