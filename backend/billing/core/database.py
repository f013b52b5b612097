"""
Configurazione Database - SQLAlchemy 2.0 Async
Progetto: Gestionale Fatture (Fatturazione QR Svizzera)

Definisce engine, session factory e dependency injection per FastAPI.

Ogni richiesta lavora su una sola AsyncSession: i service aprono
e chiudono la transazione con commit/rollback espliciti, così che
le scritture a più passi (conversione offerta, riconciliazione)
siano atomiche.
"""

import logging
from typing import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from billing.core.config import settings

# Logger per questo modulo
logger = logging.getLogger(__name__)

# ------------------------------------------------------------
# Engine Async SQLAlchemy 2.0
# ------------------------------------------------------------
engine: AsyncEngine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    pool_pre_ping=True,
    pool_size=settings.db_pool_size,
    max_overflow=settings.db_max_overflow,
)


# ------------------------------------------------------------
# Session Factory
# ------------------------------------------------------------
AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency injection per FastAPI.

    Crea una sessione database per ogni richiesta e la chiude
    automaticamente al termine. Eventuali transazioni lasciate
    aperte da un errore vengono annullate.

    Yields:
        AsyncSession: Sessione database async
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def init_db() -> None:
    """
    Inizializza la connessione al database.

    Verifica che il database sia raggiungibile e che sia installata
    la funzione generate_qr_reference, senza la quale la creazione
    delle fatture fallisce.
    """
    try:
        async with engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
            result = await conn.execute(
                text("SELECT EXISTS (SELECT 1 FROM pg_proc WHERE proname = 'generate_qr_reference')")
            )
            has_reference_function = bool(result.scalar())
        logger.info("Connessione al database stabilita con successo")
    except Exception as e:
        logger.error("Errore connessione database: %s", e)
        raise

    if not has_reference_function:
        logger.warning(
            "Funzione generate_qr_reference assente: eseguire reset_db.py "
            "prima di emettere fatture"
        )


async def close_db() -> None:
    """
    Chiude le connessioni al database.

    Da chiamare durante lo shutdown dell'applicazione.
    """
    await engine.dispose()
    logger.info("Connessioni database chiuse")
