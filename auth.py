"""Middleware de identidad para rutas protegidas.

Extrae el token Bearer del header Authorization, lo verifica y devuelve un
``AuthenticatedRequest`` que solo existe tras una verificación exitosa. Las
rutas protegidas reciben ese tipo, por lo que no pueden ejecutarse de forma
anónima.
"""

from dataclasses import dataclass
from typing import Optional
from fastapi import Depends, Header, Request
from errors import InvalidToken, Unauthorized
from logging_config import get_logger
from security import TokenService

logger = get_logger(__name__)

BEARER_PREFIX = 'Bearer '

@dataclass(frozen=True)
class AuthenticatedRequest:
    """Identidad verificada junto con la petición original."""
    user_id: str
    request: Request

# extract_bearer: Devuelve el token del header o None si falta o no es Bearer.
def extract_bearer(header: Optional[str]) -> Optional[str]:
    if not header or not header.startswith(BEARER_PREFIX):
        return None
    token = header[len(BEARER_PREFIX):].strip()
    return token or None

# authenticate_header: Aplica la máquina de estados del header y retorna el id del sujeto.
def authenticate_header(header: Optional[str], tokens: TokenService) -> str:
    token = extract_bearer(header)
    if token is None:
        raise Unauthorized("Missing token")
    try:
        return tokens.verify(token)
    except InvalidToken as e:
        logger.info("Rejected token: %s", e)
        raise Unauthorized("Invalid token") from e

def get_token_service(request: Request) -> TokenService:
    return request.app.state.tokens

# require_identity: Dependencia FastAPI para rutas que requieren autenticación.
def require_identity(
    request: Request,
    authorization: Optional[str] = Header(default=None),
    tokens: TokenService = Depends(get_token_service),
) -> AuthenticatedRequest:
    user_id = authenticate_header(authorization, tokens)
    return AuthenticatedRequest(user_id=user_id, request=request)
