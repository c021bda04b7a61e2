"""Capa de acceso a datos con control de propiedad.

Toda lectura o escritura de cuentas y movimientos filtra por el id del usuario
autenticado; nunca se confía en un userId enviado por el cliente.
"""

from typing import List, Optional
from sqlalchemy.exc import IntegrityError
from sqlmodel import select
from database import Database
from errors import DuplicateEmail, ForbiddenAccount
from logging_config import get_logger
from models import Account, Transaction, User
from schemas import AccountPayload, TransactionPayload

logger = get_logger(__name__)

TRANSACTION_LIST_LIMIT = 100

class Repository:
    """Agrupa operaciones sobre usuarios, cuentas y movimientos."""
    def __init__(self, db: Database, currency: str = 'USD'):
        self.db = db
        self.currency = currency

    # ------------------------------ Usuarios ------------------------------
    def create_user(self, email: str, password_hash: str, name: Optional[str] = None) -> User:
        """Inserta un usuario nuevo; DuplicateEmail si el email ya existe."""
        email = email.strip().lower()
        with self.db.session() as s:
            if self._email_taken(s, email):
                raise DuplicateEmail()
            user = User(email=email, name=name, password_hash=password_hash)
            s.add(user)
            try:
                s.commit()
            except IntegrityError as e:
                # Otro request insertó el mismo email entre la consulta y el insert.
                raise DuplicateEmail() from e
            s.refresh(user)
        logger.info("User created", extra={"user_id": user.id})
        return user

    @staticmethod
    def _email_taken(s, email: str) -> bool:
        return s.exec(select(User.id).where(User.email == email)).first() is not None

    def find_user_by_email(self, email: str) -> Optional[User]:
        with self.db.session() as s:
            return s.exec(select(User).where(User.email == email.strip().lower())).first()

    def find_user_by_id(self, user_id: str) -> Optional[User]:
        with self.db.session() as s:
            return s.get(User, user_id)

    def list_users(self) -> List[User]:
        with self.db.session() as s:
            statement = select(User).order_by(User.created_at.desc(), User.id)
            return list(s.exec(statement).all())

    # ------------------------------ Cuentas -------------------------------
    def list_accounts(self, user_id: str) -> List[Account]:
        """Cuentas del usuario, más recientes primero."""
        with self.db.session() as s:
            statement = (
                select(Account)
                .where(Account.user_id == user_id)
                .order_by(Account.created_at.desc(), Account.id)
            )
            return list(s.exec(statement).all())

    def create_account(self, user_id: str, fields: AccountPayload) -> Account:
        with self.db.session() as s:
            account = Account(
                user_id=user_id,
                name=fields.name,
                institution=fields.institution,
                type=fields.type,
                subtype=fields.subtype,
                mask=fields.mask,
            )
            s.add(account)
            s.commit()
            s.refresh(account)
            return account

    # ----------------------------- Movimientos ----------------------------
    def list_transactions(self, user_id: str, account_id: Optional[str] = None) -> List[Transaction]:
        """Movimientos del usuario (opcionalmente de una cuenta), máximo 100.

        Ordenados por fecha de registro descendente.
        """
        with self.db.session() as s:
            statement = select(Transaction).where(Transaction.user_id == user_id)
            if account_id:
                statement = statement.where(Transaction.account_id == account_id)
            statement = statement.order_by(
                Transaction.posted_at.desc(), Transaction.created_at.desc(), Transaction.id
            ).limit(TRANSACTION_LIST_LIMIT)
            return list(s.exec(statement).all())

    def create_transaction(self, user_id: str, account_id: str, fields: TransactionPayload) -> Transaction:
        """Inserta un movimiento tras verificar que la cuenta pertenece al usuario.

        Lanza ForbiddenAccount (sin insertar nada) si la cuenta no existe o es
        de otro usuario.
        """
        with self.db.session() as s:
            owned = s.exec(
                select(Account.id).where(Account.id == account_id, Account.user_id == user_id)
            ).first()
            if owned is None:
                logger.warning("Transaction refused for unowned account", extra={"user_id": user_id})
                raise ForbiddenAccount()
            tx = Transaction(
                user_id=user_id,
                account_id=account_id,
                posted_at=fields.posted_at,
                amount=fields.amount,
                pending=bool(fields.pending),
                currency=self.currency,
                merchant=fields.merchant,
                category=fields.category,
                note=fields.note,
            )
            s.add(tx)
            s.commit()
            s.refresh(tx)
            return tx
