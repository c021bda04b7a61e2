"""Modelos de datos persistentes.

Incluye usuarios, cuentas financieras y movimientos. Cada movimiento guarda
de forma redundante el id del dueño para filtrar por propietario sin join.
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional
from sqlmodel import SQLModel, Field

# utcnow: Instante actual en UTC con zona horaria (las columnas DateTime la exigen).
def utcnow() -> datetime:
    return datetime.now(timezone.utc)

# new_id: Genera identificadores opacos y globalmente únicos.
def new_id() -> str:
    return uuid.uuid4().hex

class User(SQLModel, table=True):
    """Representa un usuario autenticable.

    Campos:
      email: Único a nivel global.
      name: Nombre visible opcional.
      password_hash: Hash bcrypt; nunca se devuelve a los clientes.
    """
    __tablename__ = 'users'

    id: str = Field(default_factory=new_id, primary_key=True)
    email: str = Field(index=True, unique=True)
    name: Optional[str] = None
    password_hash: str
    created_at: datetime = Field(default_factory=utcnow, index=True)

class Account(SQLModel, table=True):
    """Cuenta financiera con exactamente un usuario dueño."""
    __tablename__ = 'accounts'

    id: str = Field(default_factory=new_id, primary_key=True)
    user_id: str = Field(foreign_key='users.id', index=True)
    name: str
    institution: Optional[str] = None
    type: str  # depository | credit | loan | investment ...
    subtype: Optional[str] = None
    mask: Optional[str] = None  # últimos 4 dígitos, solo para mostrar
    created_at: datetime = Field(default_factory=utcnow, index=True)

class Transaction(SQLModel, table=True):
    """Movimiento monetario de una cuenta.

    amount es decimal con signo: negativo = salida, positivo = entrada.
    """
    __tablename__ = 'transactions'

    id: str = Field(default_factory=new_id, primary_key=True)
    user_id: str = Field(foreign_key='users.id', index=True)
    account_id: str = Field(foreign_key='accounts.id', index=True)
    posted_at: datetime = Field(index=True)
    amount: Decimal = Field(max_digits=14, decimal_places=2)
    pending: bool = False
    currency: str = Field(default='USD', max_length=3)
    merchant: Optional[str] = None
    category: Optional[str] = None
    note: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
