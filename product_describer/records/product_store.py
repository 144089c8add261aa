"""Product record store: the business record a description is written to."""
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..errors import RemoteError
from ..platform_client import PlatformAPIClient

logger = logging.getLogger(__name__)

PRODUCTS_PATH = "/v1/products"


@dataclass
class ProductRecord:
    id: str
    name: str
    description: Optional[str] = None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "ProductRecord":
        return cls(id=data["id"], name=data.get("name") or "", description=data.get("description"))


class ProductStoreClient:
    """Retrieve and update products. Errors propagate as NotFound / RemoteError."""

    def __init__(self, api: PlatformAPIClient):
        self._api = api

    async def retrieve(self, product_id: str) -> ProductRecord:
        response = await self._api.get(f"{PRODUCTS_PATH}/{product_id}")
        return _to_record(response, f"{PRODUCTS_PATH}/{product_id}")

    async def update_description(self, product_id: str, description: str) -> ProductRecord:
        response = await self._api.post(
            f"{PRODUCTS_PATH}/{product_id}", data={"description": description}
        )
        logger.info(f"Updated description of product {product_id}")
        return _to_record(response, f"{PRODUCTS_PATH}/{product_id}")


def _to_record(data: Dict[str, Any], path: str) -> ProductRecord:
    try:
        return ProductRecord.from_api(data)
    except KeyError as e:
        raise RemoteError(f"Malformed product response from {path}: missing {e}") from e
