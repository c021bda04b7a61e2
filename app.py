"""Aplicación FastAPI principal con endpoints de autenticación, cuentas y movimientos.

Los componentes (base de datos, credenciales, tokens, repositorio) se crean en
``create_app`` y se inyectan a los handlers mediante dependencias. Dentro de
cada petición la validación precede a la identidad, y esta a la persistencia.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import List, Optional, Type

from fastapi import Depends, FastAPI, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from auth import AuthenticatedRequest, get_token_service, require_identity
from coach import CoachService
from config import Settings, get_settings
from database import Database
from errors import AppError, InvalidCredentials, ValidationError
from logging_config import get_logger, setup_logging
from repository import Repository
from schemas import (
    AccountOut, AccountPayload, AuthOut, ChatOut, ChatPayload, HealthOut, LoginPayload,
    MeOut, SignupPayload, TransactionOut, TransactionPayload, UserOut,
    REQUEST_SOURCES, flatten_errors, validate,
)
from security import CredentialService, TokenService

logger = get_logger('app')

# ----------------------- Dependencias -----------------------

def get_repository(request: Request) -> Repository:
    return request.app.state.repository

def get_credentials(request: Request) -> CredentialService:
    return request.app.state.credentials

def get_coach(request: Request) -> CoachService:
    return request.app.state.coach

# validated_body: Genera dependencia que lee el JSON del cuerpo y lo valida contra el esquema.
def validated_body(schema: Type):
    async def reader(request: Request):
        try:
            raw = await request.json()
        except ValueError:
            raise ValidationError(form_errors=["Invalid JSON body"])
        return validate(raw, schema)
    reader.__name__ = f"validated_{schema.__name__}"
    return reader

# ------------------------- Manejo de errores -------------------------

def register_error_handlers(app: FastAPI):
    """Todas las respuestas de error son JSON con un campo ``error``."""
    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.error})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        flat = flatten_errors(exc.errors(), sources=REQUEST_SOURCES)
        return JSONResponse(status_code=flat.status_code, content={"error": flat.error})

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=exc.headers)

    @app.exception_handler(SQLAlchemyError)
    async def persistence_error_handler(request: Request, exc: SQLAlchemyError):
        logger.exception("Persistence failure on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"error": str(getattr(exc, "orig", None) or exc)})

# ------------------------------ Rutas ------------------------------

def register_routes(app: FastAPI):
    settings: Settings = app.state.settings

    @app.get('/health', response_model=HealthOut)
    def health():
        """Verificación básica de salud del servicio."""
        return HealthOut(ok=True, service=settings.service_name, time=datetime.now(timezone.utc))

    # --------------------------- Auth ---------------------------
    @app.post('/auth/signup', response_model=AuthOut, status_code=status.HTTP_201_CREATED)
    def signup(
        payload: SignupPayload = Depends(validated_body(SignupPayload)),
        repo: Repository = Depends(get_repository),
        credentials: CredentialService = Depends(get_credentials),
        tokens: TokenService = Depends(get_token_service),
    ):
        """Registra un usuario nuevo y devuelve el usuario junto a su token."""
        user = repo.create_user(payload.email, credentials.hash(payload.password), payload.name)
        return AuthOut(user=UserOut.model_validate(user), token=tokens.issue(user.id))

    @app.post('/auth/login', response_model=AuthOut)
    def login(
        payload: LoginPayload = Depends(validated_body(LoginPayload)),
        repo: Repository = Depends(get_repository),
        credentials: CredentialService = Depends(get_credentials),
        tokens: TokenService = Depends(get_token_service),
    ):
        """Autentica por email y contraseña y devuelve un token nuevo.

        El error es idéntico si el email no existe o la contraseña no coincide.
        """
        user = repo.find_user_by_email(payload.email)
        # Se verifica contra un hash ficticio si no hay usuario para igualar el costo.
        stored_hash = user.password_hash if user else app.state.dummy_hash
        if not credentials.verify(payload.password, stored_hash) or user is None:
            logger.info("Failed login attempt")
            raise InvalidCredentials()
        return AuthOut(user=UserOut.model_validate(user), token=tokens.issue(user.id))

    @app.get('/me', response_model=MeOut)
    def me(
        identity: AuthenticatedRequest = Depends(require_identity),
        repo: Repository = Depends(get_repository),
    ):
        """Devuelve el usuario dueño del token (null si ya no existe)."""
        user = repo.find_user_by_id(identity.user_id)
        return MeOut(user=UserOut.model_validate(user) if user else None)

    # -------------------------- Usuarios --------------------------
    @app.get('/users', response_model=List[UserOut])
    def list_users(repo: Repository = Depends(get_repository)):
        """Lista usuarios (demo), más recientes primero."""
        return [UserOut.model_validate(u) for u in repo.list_users()]

    @app.post('/users', response_model=UserOut, status_code=status.HTTP_201_CREATED)
    def create_user(
        payload: SignupPayload = Depends(validated_body(SignupPayload)),
        repo: Repository = Depends(get_repository),
        credentials: CredentialService = Depends(get_credentials),
    ):
        user = repo.create_user(payload.email, credentials.hash(payload.password), payload.name)
        return UserOut.model_validate(user)

    # -------------------------- Cuentas --------------------------
    @app.get('/accounts', response_model=List[AccountOut])
    def list_accounts(
        identity: AuthenticatedRequest = Depends(require_identity),
        repo: Repository = Depends(get_repository),
    ):
        return [AccountOut.model_validate(a) for a in repo.list_accounts(identity.user_id)]

    @app.post('/accounts', response_model=AccountOut, status_code=status.HTTP_201_CREATED)
    def create_account(
        payload: AccountPayload = Depends(validated_body(AccountPayload)),
        identity: AuthenticatedRequest = Depends(require_identity),
        repo: Repository = Depends(get_repository),
    ):
        """Crea una cuenta para el usuario autenticado."""
        return AccountOut.model_validate(repo.create_account(identity.user_id, payload))

    # ------------------------- Movimientos -------------------------
    @app.get('/transactions', response_model=List[TransactionOut])
    def list_transactions(
        account_id: Optional[str] = Query(default=None, alias='accountId'),
        identity: AuthenticatedRequest = Depends(require_identity),
        repo: Repository = Depends(get_repository),
    ):
        """Lista hasta 100 movimientos del usuario, más recientes primero."""
        rows = repo.list_transactions(identity.user_id, account_id or None)
        return [TransactionOut.model_validate(t) for t in rows]

    @app.post('/transactions', response_model=TransactionOut, status_code=status.HTTP_201_CREATED)
    def create_transaction(
        payload: TransactionPayload = Depends(validated_body(TransactionPayload)),
        identity: AuthenticatedRequest = Depends(require_identity),
        repo: Repository = Depends(get_repository),
    ):
        """Registra un movimiento en una cuenta propia (403 si no lo es)."""
        tx = repo.create_transaction(identity.user_id, payload.account_id, payload)
        return TransactionOut.model_validate(tx)

    # ---------------------------- IA ----------------------------
    @app.post('/ai/chat', response_model=ChatOut)
    def ai_chat(
        payload: ChatPayload = Depends(validated_body(ChatPayload)),
        coach: CoachService = Depends(get_coach),
    ):
        """Stub público del asistente de finanzas."""
        return ChatOut(reply=coach.reply(payload.message))

# ---------------------------- Fábrica ----------------------------

def create_app(settings: Settings = None) -> FastAPI:
    """Construye la aplicación con sus componentes inyectados."""
    settings = settings or get_settings()
    setup_logging(settings)

    db = Database(settings.database_url)
    credentials = CredentialService(rounds=settings.bcrypt_rounds)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Inicializa la base de datos al arrancar y libera el pool al terminar.
        if settings.using_default_secret:
            logger.warning("JWT_SECRET not set, using development secret")
        db.init_db()
        logger.info("Service %s started", settings.service_name)
        yield
        db.dispose()
        logger.info("Service %s stopped", settings.service_name)

    app = FastAPI(title="Prosperity Compass API", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.db = db
    app.state.credentials = credentials
    app.state.tokens = TokenService(settings.jwt_secret, settings.jwt_algorithm, settings.jwt_exp_days)
    app.state.repository = Repository(db, currency=settings.default_currency)
    app.state.coach = CoachService(settings.ai_chat_url, settings.request_timeout, settings.max_retries)
    app.state.dummy_hash = credentials.hash('not-a-real-password')

    register_error_handlers(app)
    register_routes(app)
    return app

app = create_app()

if __name__ == '__main__':
    import uvicorn
    uvicorn.run(app, host='0.0.0.0', port=app.state.settings.port)
