"""Credential lookup, description generation and save, with user notifications."""
import logging
from typing import Optional, Sequence

from ...errors import InputMissing, NotFound, RemoteError
from ...notifications.scheduler import CAUTION, NotificationScheduler
from ...records.product_store import ProductRecord, ProductStoreClient
from ...secrets.domains.models import CREDENTIAL_NAME, HostContext, Scope
from ...secrets.domains.secret_store import SecretStoreClient
from ..domains.chat_client import ChatCompletionClient
from ..domains.models import (
    CredentialMissing,
    DescribeResult,
    GenerationOutcome,
    GenerationRequest,
    Success,
)

logger = logging.getLogger(__name__)

GENERATING_MESSAGE = "Generating description..."
GENERATED_MESSAGE = "Description generated successfully!"
GENERATION_FAILED_MESSAGE = "Failed to generate description."
CREDENTIAL_MISSING_MESSAGE = "OpenAI key missing"
SAVING_MESSAGE = "Saving description..."
SAVED_MESSAGE = "Product Updated"
SAVE_FAILED_MESSAGE = "Failed to update product"
INPUT_MISSING_MESSAGE = "Product missing"
LOAD_FAILED_MESSAGE = "Failed to load product"


class DescriptionOrchestrator:
    """Sequences one user action: credential lookup, then one generation call.

    All collaborators are injected; nothing here keeps state between calls,
    so concurrent actions are independent of each other.
    """

    def __init__(
        self,
        store: SecretStoreClient,
        generator: ChatCompletionClient,
        scheduler: NotificationScheduler,
        records: ProductStoreClient,
    ):
        self._store = store
        self._generator = generator
        self._scheduler = scheduler
        self._records = records

    async def fetch_credential(self, user_id: str) -> Optional[str]:
        """
        Look up the user's generation credential.

        Returns:
            The credential payload, or None if it is absent or the store
            could not be reached. Never raises.
        """
        try:
            secret = await self._store.find(Scope.for_user(user_id), CREDENTIAL_NAME)
        except NotFound as e:
            logger.info(f"No '{CREDENTIAL_NAME}' stored for user {user_id}: {e.message}")
            return None
        except RemoteError as e:
            logger.warning(f"Could not read '{CREDENTIAL_NAME}' for user {user_id}: {e.message}")
            return None

        if not secret.payload:
            logger.info(f"'{CREDENTIAL_NAME}' for user {user_id} has no payload")
            return None
        return secret.payload

    async def generate_description(
        self,
        credential: str,
        subject_name: str,
        features: Sequence[str],
    ) -> GenerationOutcome:
        request = GenerationRequest(subject_name=subject_name, features=list(features))
        return await self._generator.complete(credential, request)

    async def describe(
        self,
        context: HostContext,
        subject_name: str,
        features: Sequence[str],
    ) -> DescribeResult:
        """
        Run the full generate action for ``context.user_id``.

        Returns:
            Success(text), Failure(reason), or CredentialMissing when the
            user has no credential (the generation endpoint is not called)
        """
        async with self._scheduler.pending(GENERATING_MESSAGE, GENERATION_FAILED_MESSAGE) as handle:
            credential = await self.fetch_credential(context.user_id)
            if credential is None:
                logger.error(f"API key not found for user {context.user_id}")
                handle.caution(CREDENTIAL_MISSING_MESSAGE)
                return CredentialMissing(user_id=context.user_id)

            outcome = await self.generate_description(credential, subject_name, features)
            if isinstance(outcome, Success):
                handle.succeed(GENERATED_MESSAGE)
            else:
                logger.error(f"Failed to generate description for '{subject_name}': {outcome.reason}")
                handle.caution(f"{GENERATION_FAILED_MESSAGE} {outcome.reason}")
            return outcome

    async def load_record(self, record_id: str) -> Optional[ProductRecord]:
        try:
            return await self._records.retrieve(record_id)
        except (NotFound, RemoteError) as e:
            logger.error(f"Failed to load product {record_id}: {e.message}")
            self._scheduler.notify(CAUTION, f"{LOAD_FAILED_MESSAGE}: {e.message}")
            return None

    async def save_description(
        self,
        record_id: Optional[str],
        description: Optional[str],
    ) -> Optional[ProductRecord]:
        """
        Persist a reviewed description onto the product record.

        Returns:
            The updated record, or None if input was missing or the update
            failed (both are shown as caution notifications)
        """
        try:
            _require_input(record_id, description)
        except InputMissing as e:
            logger.error(e.message)
            self._scheduler.notify(CAUTION, INPUT_MISSING_MESSAGE)
            return None

        return await self._scheduler.track(
            SAVING_MESSAGE,
            self._records.update_description(record_id, description),
            SAVED_MESSAGE,
            SAVE_FAILED_MESSAGE,
        )


def _require_input(record_id: Optional[str], description: Optional[str]) -> None:
    if not record_id:
        raise InputMissing("Product is missing.")
    if not description or not description.strip():
        raise InputMissing("Description is missing.")
