"""Funciones de seguridad: hashing de contraseñas y manejo de JWT.

Se utiliza bcrypt vía passlib para almacenar contraseñas y PyJWT para tokens.
Ambos servicios se construyen una vez al arrancar a partir de Settings.
"""

from datetime import datetime, timedelta, timezone
from passlib.context import CryptContext
import jwt
from errors import InvalidToken

BCRYPT_MAX_BYTES = 72

class CredentialService:
    """Hash y verificación de contraseñas con bcrypt y costo fijo."""
    def __init__(self, rounds: int = 10):
        self._context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)

    # _truncate: bcrypt solo considera los primeros 72 bytes.
    @staticmethod
    def _truncate(password: str) -> str:
        password_bytes = password.encode('utf-8')[:BCRYPT_MAX_BYTES]
        return password_bytes.decode('utf-8', errors='ignore')

    # hash: Genera hash bcrypt (con sal) de una contraseña en texto plano.
    def hash(self, password: str) -> str:
        return self._context.hash(self._truncate(password))

    # verify: Verifica si la contraseña coincide con el hash; False si no.
    def verify(self, password: str, password_hash: str) -> bool:
        try:
            return self._context.verify(self._truncate(password), password_hash)
        except ValueError:
            # Hash almacenado con formato desconocido.
            return False

class TokenService:
    """Emite y verifica tokens firmados con expiración."""
    def __init__(self, secret: str, algorithm: str = 'HS256', exp_days: int = 7):
        if not secret:
            raise ValueError("Token secret must not be empty")
        self._secret = secret
        self._algorithm = algorithm
        self.lifetime = timedelta(days=exp_days)

    def __repr__(self):
        return f"TokenService(algorithm={self._algorithm!r}, lifetime={self.lifetime})"

    # issue: Crea un JWT con el id del sujeto, expirando en los días configurados.
    def issue(self, subject_id: str, now: datetime = None) -> str:
        now = now or datetime.now(timezone.utc)
        payload = {"sub": str(subject_id), "iat": now, "exp": now + self.lifetime}
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    # verify: Decodifica el JWT y retorna el sujeto o lanza InvalidToken.
    def verify(self, token: str) -> str:
        try:
            data = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": ["sub", "exp"]},
            )
        except jwt.ExpiredSignatureError as e:
            raise InvalidToken("expired") from e
        except jwt.PyJWTError as e:
            raise InvalidToken("malformed or bad signature") from e
        subject = data.get('sub')
        if not isinstance(subject, str) or not subject:
            raise InvalidToken("missing subject")
        return subject
