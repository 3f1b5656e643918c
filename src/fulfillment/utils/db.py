from protean.domain import Domain
from sqlalchemy import create_engine


def _sql_providers(domain: Domain):
    for _, provider in domain.providers.items():
        if provider.conn_info["provider"] in ("sqlite", "postgresql"):
            yield provider


def setup_db(domain: Domain):
    """Create tables for every aggregate, entity and projection on a SQL provider.

    Non-SQL providers (the in-memory default) are left untouched.
    """
    with domain.domain_context():
        for provider in _sql_providers(domain):
            engine = create_engine(provider.conn_info["database_uri"])

            records = [
                *domain.registry.aggregates.values(),
                *domain.registry.entities.values(),
                *domain.registry.projections.values(),
            ]
            for record in records:
                if record.cls.meta_.provider == provider.name:
                    # Touching the DAO registers the table on the provider's metadata
                    domain.repository_for(record.cls)._dao  # noqa: B018

            if hasattr(domain, "_outbox_repos") and provider.name in domain._outbox_repos:
                domain._outbox_repos[provider.name]._dao  # noqa: B018

            provider._metadata.create_all(engine)


def drop_db(domain: Domain):
    """Drop every table created by ``setup_db``."""
    with domain.domain_context():
        for provider in _sql_providers(domain):
            engine = create_engine(provider.conn_info["database_uri"])
            provider._metadata.drop_all(engine)
