"""Factory for creating ContextCurator instances."""

import logging

from curator.core.config import Settings, settings
from curator.core.config.loaders import load_prior_config, load_reference_config
from curator.core.exceptions import ConfigurationError
from curator.core.models import LearningConfig
from curator.core.postgres_state_store import PostgresPosteriorStore
from curator.core.sqlite_state_store import SqlitePosteriorStore
from curator.core.state_store import InMemoryPosteriorStore, PosteriorStore
from curator.engines.curator import ContextCurator
from curator.engines.selector import DecisionOracle
from curator.engines.thompson import LocalThompsonOracle
from curator.oracle.client import OracleClient

logger = logging.getLogger(__name__)


async def create_posterior_store(config: Settings | None = None) -> PosteriorStore:
    """Create the posterior store selected by ``store_backend``.

    Args:
        config: Settings to read (module settings if None)

    Returns:
        Connected PosteriorStore

    Raises:
        ConfigurationError: If postgres is selected without a database URL
        StoreError: If the backend cannot be opened
    """
    config = config or settings

    if config.store_backend == "memory":
        return InMemoryPosteriorStore()

    if config.store_backend == "postgres":
        if not config.database_url:
            raise ConfigurationError(
                "CURATOR_DATABASE_URL is required for the postgres store backend"
            )
        return await PostgresPosteriorStore.connect(
            config.database_url,
            learner=config.learner_name,
            pool_size=config.database_pool_size,
        )

    store = SqlitePosteriorStore.open(config.store_dir)
    logger.info(f"Posterior store opened at {store.db_path}")
    return store


def create_remote_oracle(config: Settings | None = None) -> OracleClient | None:
    """Remote learner client, or None when no oracle URL is configured."""
    config = config or settings
    if not config.oracle_url:
        return None
    return OracleClient(
        config.oracle_url,
        learner=config.learner_name,
        api_key=config.oracle_api_key or None,
        select_timeout=config.oracle_select_timeout,
        observe_timeout=config.oracle_observe_timeout,
        query_timeout=config.oracle_query_timeout,
    )


def create_oracle(
    config: Settings,
    store: PosteriorStore,
    learning: LearningConfig,
    priors: dict[str, tuple[float, float]] | None = None,
) -> DecisionOracle | None:
    """Decision oracle selected by the ``oracle`` setting.

    ``none`` leaves selection to the first-fit fallback, ``local`` uses
    Thompson sampling over the store, ``remote`` calls the learner service.
    """
    if config.oracle == "local":
        return LocalThompsonOracle(store, learning, priors=priors)
    if config.oracle == "remote":
        client = create_remote_oracle(config)
        if client is None:
            logger.warning(
                "Remote oracle selected but CURATOR_ORACLE_URL is empty; "
                "using fallback selection"
            )
        return client
    return None


async def create_curator(
    config: Settings | None = None,
    store: PosteriorStore | None = None,
) -> ContextCurator:
    """Create a ContextCurator with all dependencies.

    Args:
        config: Settings to read (module settings if None)
        store: Optional store instance (creates one from settings if None)

    Returns:
        Configured ContextCurator
    """
    config = config or settings
    if store is None:
        store = await create_posterior_store(config)

    learning = config.learning_config
    priors = load_prior_config()
    oracle = create_oracle(config, store, learning, priors=priors)
    observer = oracle if isinstance(oracle, OracleClient) else None

    curator = ContextCurator(
        store,
        learning,
        oracle=oracle,
        observer=observer,
        priors=priors,
        reference_config=load_reference_config(),
    )
    logger.info(
        f"Curator ready (phase={learning.phase}, backend={config.store_backend}, "
        f"oracle={config.oracle})"
    )
    return curator
