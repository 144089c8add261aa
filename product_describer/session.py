"""Composition root: build every client once per session and wire them together."""
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from .generation.domains.chat_client import ChatCompletionClient
from .generation.workflows.orchestrator import DescriptionOrchestrator
from .notifications.scheduler import NotificationScheduler, Sink
from .platform_client import PlatformAPIClient
from .records.product_store import ProductStoreClient
from .secrets.domains.config_loader import ConfigError
from .secrets.domains.gcp_client import GCPSecretClient
from .secrets.domains.secret_store import SecretStoreClient
from .secrets.workflows.secret_operations import get_secret

logger = logging.getLogger(__name__)


@dataclass
class Session:
    store: SecretStoreClient
    records: ProductStoreClient
    generator: ChatCompletionClient
    scheduler: NotificationScheduler
    orchestrator: DescriptionOrchestrator


def build_session(
    config: Dict[str, Any],
    sink: Optional[Sink] = None,
    gcp_client: Optional[GCPSecretClient] = None,
) -> Session:
    """
    Build the clients for one session from a loaded config.

    Raises:
        ConfigError: If the platform API key cannot be resolved
    """
    platform = config["platform"]
    generation = config["generation"]

    key_name = platform["api_key_secret"]
    api_key = get_secret(key_name, quiet=True, config=config, gcp_client=gcp_client)
    if not api_key:
        raise ConfigError(
            f"Platform API key '{key_name}' not found in environment or GCP Secret Manager"
        )

    api = PlatformAPIClient(
        api_key,
        base_url=platform["base_url"],
        timeout=float(platform["timeout"]),
    )
    store = SecretStoreClient(api)
    records = ProductStoreClient(api)
    generator = ChatCompletionClient(
        base_url=generation["base_url"],
        model=generation["model"],
        max_tokens=int(generation["max_tokens"]),
        timeout=float(generation["timeout"]),
    )
    scheduler = NotificationScheduler(sink)
    orchestrator = DescriptionOrchestrator(store, generator, scheduler, records)

    logger.debug(f"Session ready against {api.base_url}")
    return Session(
        store=store,
        records=records,
        generator=generator,
        scheduler=scheduler,
        orchestrator=orchestrator,
    )
