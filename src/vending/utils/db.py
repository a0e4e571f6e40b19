"""Schema management for SQL-backed providers (memory providers need none)."""

from protean.domain import Domain
from sqlalchemy import create_engine

_SQL_PROVIDERS = ("sqlite", "postgresql")


def _sql_providers(domain: Domain):
    for _, provider in domain.providers.items():
        if provider.conn_info["provider"] in _SQL_PROVIDERS:
            yield provider


def setup_db(domain: Domain) -> None:
    """Create tables for every aggregate persisted through a SQL provider."""
    with domain.domain_context():
        for provider in _sql_providers(domain):
            # Tables are only mapped once a repository has built its DAO.
            for _, record in domain.registry.aggregates.items():
                if record.cls.meta_.provider == provider.name:
                    domain.repository_for(record.cls)._dao  # noqa: B018

            engine = create_engine(provider.conn_info["database_uri"])
            provider._metadata.create_all(engine)
            engine.dispose()


def drop_db(domain: Domain) -> None:
    with domain.domain_context():
        for provider in _sql_providers(domain):
            engine = create_engine(provider.conn_info["database_uri"])
            provider._metadata.drop_all(engine)
            engine.dispose()
