# src/logistics_pricer/db.py
from __future__ import annotations

import logging

from sqlalchemy import create_engine, select
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from .settings import settings

logger = logging.getLogger(__name__)

# psycopg3 uses 'postgresql+psycopg' instead of 'postgresql+psycopg2'
def get_sqlalchemy_url() -> str:
    url = settings.sqlalchemy_url
    if 'postgresql+psycopg2' in url:
        url = url.replace('postgresql+psycopg2', 'postgresql+psycopg')
    elif url.startswith('postgresql://'):
        url = url.replace('postgresql://', 'postgresql+psycopg://')
    return url


def _engine_kwargs(url: str) -> dict:
    if url.startswith("sqlite"):
        # One shared connection so in-memory databases survive across sessions
        return {
            "connect_args": {"check_same_thread": False},
            "poolclass": StaticPool,
        }
    return {
        "pool_pre_ping": True,
        "pool_recycle": 300,
        "connect_args": {
            "options": "-c statement_timeout=30000",  # 30 second timeout
            # Avoid duplicate prepared statement errors across pooled connections
            "prepare_threshold": 0,
        },
    }


_url = get_sqlalchemy_url()
engine = create_engine(_url, **_engine_kwargs(_url))

SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


def _load_seed_data(session: Session) -> None:
    from .models import ShippingRoute, TariffRate
    from .rules.seed_loader import load_seed_registry

    registry = load_seed_registry(registry_path=settings.seed_data_path)

    has_rates = session.execute(select(TariffRate.id).limit(1)).first() is not None
    if not has_rates:
        session.add_all(TariffRate(**row) for row in registry["tariff_rates"])
        logger.info("Loaded %d seed tariff rates", len(registry["tariff_rates"]))

    has_routes = session.execute(select(ShippingRoute.id).limit(1)).first() is not None
    if not has_routes:
        session.add_all(ShippingRoute(**row) for row in registry["shipping_routes"])
        logger.info("Loaded %d seed shipping routes", len(registry["shipping_routes"]))

    session.commit()


def init_db(*, seed: bool | None = None) -> None:
    # Safe if tables already exist
    from .models import Base

    Base.metadata.create_all(bind=engine)

    if seed is None:
        seed = settings.seed_on_startup
    if not seed:
        return
    with SessionLocal() as session:
        _load_seed_data(session)
