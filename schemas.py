"""Esquemas de entrada y salida de la API.

La entrada no confiable se valida con ``validate`` antes de llegar a la capa
de datos; los errores se devuelven por campo, todos a la vez. Los nombres en
JSON usan camelCase (accountId, postedAt, createdAt).
"""

from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Dict, List, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from errors import ValidationError

CENTS = Decimal('0.01')
MAX_AMOUNT = Decimal('999999999999.99')

# Primer elemento de loc en los errores de validación de FastAPI.
REQUEST_SOURCES = ('query', 'path', 'header', 'cookie', 'body')

SchemaT = TypeVar('SchemaT', bound=BaseModel)

class CamelModel(BaseModel):
    """Base común: alias camelCase y lectura desde objetos ORM."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

# ---------------------------- Entrada ----------------------------
class SignupPayload(CamelModel):
    """Payload para registro (también usado en POST /users)."""
    email: EmailStr
    name: Optional[str] = Field(default=None, min_length=1)
    password: str = Field(min_length=6)

class LoginPayload(CamelModel):
    """Payload para inicio de sesión."""
    email: EmailStr
    password: str = Field(min_length=6)

class AccountPayload(CamelModel):
    """Payload para crear una cuenta del usuario autenticado."""
    name: str = Field(min_length=1)
    institution: Optional[str] = None
    type: str = Field(min_length=1)
    subtype: Optional[str] = None
    mask: Optional[str] = Field(default=None, pattern=r'^\d{4}$')

    @field_validator('mask', mode='before')
    @classmethod
    def blank_mask_is_absent(cls, value: Any):
        # El formulario envía '' cuando no se indica la máscara.
        if isinstance(value, str) and not value.strip():
            return None
        return value

class TransactionPayload(CamelModel):
    """Payload para crear un movimiento.

    postedAt acepta timestamp ISO o fecha sola (YYYY-MM-DD); amount acepta
    número o cadena numérica y se convierte a decimal con dos posiciones.
    """
    account_id: str = Field(min_length=1)
    posted_at: datetime
    amount: Decimal
    pending: Optional[bool] = None
    merchant: Optional[str] = None
    category: Optional[str] = None
    note: Optional[str] = None

    @field_validator('posted_at', mode='before')
    @classmethod
    def coerce_posted_at(cls, value: Any):
        if isinstance(value, datetime):
            return value
        if isinstance(value, date):
            return datetime(value.year, value.month, value.day)
        if isinstance(value, str) and len(value.strip()) == 10:
            try:
                d = date.fromisoformat(value.strip())
            except ValueError:
                raise ValueError("Invalid date")
            return datetime(d.year, d.month, d.day)
        return value

    @field_validator('posted_at')
    @classmethod
    def normalize_posted_at(cls, value: datetime) -> datetime:
        # Se almacena en UTC con zona; sin zona se asume UTC.
        if value.utcoffset() is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    @field_validator('amount', mode='before')
    @classmethod
    def coerce_amount(cls, value: Any) -> Decimal:
        return to_amount(value)

class ChatPayload(CamelModel):
    message: str = Field(min_length=1)

    @field_validator('message')
    @classmethod
    def not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Message must not be blank")
        return value.strip()

# to_amount: Convierte número o cadena numérica a decimal de punto fijo.
def to_amount(value: Any) -> Decimal:
    if isinstance(value, bool) or value is None:
        raise ValueError("Expected number")
    if isinstance(value, float):
        # Pasar por str evita arrastrar el error binario del float.
        value = repr(value)
    if isinstance(value, str):
        value = value.strip()
        if not value:
            raise ValueError("Expected number")
    if not isinstance(value, (int, str, Decimal)):
        raise ValueError("Expected number")
    try:
        amount = Decimal(value)
    except InvalidOperation:
        raise ValueError("Expected number")
    if not amount.is_finite():
        raise ValueError("Amount must be finite")
    amount = amount.quantize(CENTS, rounding=ROUND_HALF_UP)
    if abs(amount) > MAX_AMOUNT:
        raise ValueError("Amount is too large")
    return amount

# ---------------------------- Salida ----------------------------
class UserOut(CamelModel):
    """Forma pública de un usuario (sin hash de contraseña)."""
    id: str
    email: str
    name: Optional[str] = None
    created_at: datetime

class AuthOut(BaseModel):
    user: UserOut
    token: str

class MeOut(BaseModel):
    user: Optional[UserOut] = None

class AccountOut(CamelModel):
    id: str
    user_id: str
    name: str
    institution: Optional[str] = None
    type: str
    subtype: Optional[str] = None
    mask: Optional[str] = None
    created_at: datetime

class TransactionOut(CamelModel):
    id: str
    user_id: str
    account_id: str
    posted_at: datetime
    amount: Decimal  # se serializa como cadena decimal en JSON
    pending: bool
    currency: str
    merchant: Optional[str] = None
    category: Optional[str] = None
    note: Optional[str] = None
    created_at: datetime

class HealthOut(BaseModel):
    ok: bool
    service: str
    time: datetime

class ChatOut(BaseModel):
    reply: str

# -------------------------- Validación --------------------------

# flatten_errors: Agrupa errores de pydantic en formErrors / fieldErrors.
#   sources: orígenes de FastAPI ('query', 'body', ...) a quitar del inicio de loc.
def flatten_errors(errors: List[Dict[str, Any]], sources: tuple = ()) -> ValidationError:
    form_errors: List[str] = []
    field_errors: Dict[str, List[str]] = {}
    for err in errors:
        loc = tuple(err.get('loc', ()))
        if loc and loc[0] in sources:
            loc = loc[1:]
        msg = err.get('msg', 'Invalid value')
        if msg.startswith('Value error, '):
            msg = msg[len('Value error, '):]
        if not loc:
            form_errors.append(msg)
            continue
        field = '.'.join(str(part) for part in loc)
        field_errors.setdefault(field, []).append(msg)
    return ValidationError(form_errors, field_errors)

# validate: Valida entrada cruda contra un esquema o lanza ValidationError.
def validate(raw: Any, schema: Type[SchemaT]) -> SchemaT:
    try:
        return schema.model_validate(raw)
    except PydanticValidationError as e:
        raise flatten_errors(e.errors()) from None
