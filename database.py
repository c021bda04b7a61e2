"""Módulo de acceso a la base de datos.

Define el manejador del motor y utilidades de sesión para realizar
operaciones CRUD. El manejador se construye explícitamente y se inyecta
en los componentes que lo necesitan; no existe un motor global.
"""

from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine, Session

# _engine_kwargs: Ajustes necesarios para SQLite (hilos y bases en memoria).
def _engine_kwargs(url: str) -> dict:
    if not url.startswith('sqlite'):
        return {'pool_pre_ping': True}
    kwargs = {'connect_args': {'check_same_thread': False}}
    if url in ('sqlite://', 'sqlite:///:memory:') or 'mode=memory' in url:
        # Una sola conexión compartida para que todas las sesiones vean las mismas tablas.
        kwargs['poolclass'] = StaticPool
    return kwargs

class Database:
    """Envuelve el motor SQLAlchemy con ciclo de vida ligado al proceso."""
    def __init__(self, url: str, echo: bool = False):
        self.url = url
        self.engine = create_engine(url, echo=echo, **_engine_kwargs(url))

    # init_db: Crea todas las tablas definidas en los modelos si no existen.
    def init_db(self):
        # Importar modelos para registrarlos en el metadata.
        import models  # noqa: F401
        SQLModel.metadata.create_all(self.engine)

    def session(self) -> 'DBSession':
        return DBSession(self.engine)

    def dispose(self):
        self.engine.dispose()

class DBSession:
    """Context manager para manejar sesiones.

    Al salir del contexto realiza rollback si hubo excepción y cierra la sesión.
    """
    def __init__(self, engine):
        self.engine = engine

    def __enter__(self):
        self.session = Session(self.engine)
        return self.session

    def __exit__(self, exc_type, exc, tb):
        if exc:
            self.session.rollback()
        self.session.close()
