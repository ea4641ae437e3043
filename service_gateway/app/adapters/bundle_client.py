"""
Bundle lookup for Gateway.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel

from shared.logging import get_logger
from shared.store import StoreClient


class Bundle(BaseModel):
    """A bundle version and the org that owns it."""
    id: int
    app_id: str
    name: Optional[str] = None
    r2_path: Optional[str] = None
    bucket_id: Optional[str] = None
    storage_provider: Optional[str] = None
    checksum: Optional[str] = None
    owner_org_id: Optional[str] = None
    owner_created_by: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Bundle":
        owner = row.get("owner_org")
        fields = {k: v for k, v in row.items() if k in cls.model_fields and k != "owner_org_id"}
        if isinstance(owner, dict):
            fields["owner_org_id"] = owner.get("id")
            fields["owner_created_by"] = owner.get("created_by")
        return cls(**fields)


class BundleClient:
    """Reads bundles with their owning org in one query."""

    def __init__(self, store: StoreClient):
        self.store = store
        self.logger = get_logger("gateway.bundle_client")

    async def get_bundle(self, app_id: str, bundle_id: int) -> Optional[Bundle]:
        """Bundle ``bundle_id`` of the app, or None when it does not exist.

        Store failures propagate.
        """
        row = await self.store.select(
            "app_versions",
            columns="*,owner_org(id,created_by)",
            filters={"app_id": app_id, "id": bundle_id},
            single=True
        )
        if not row:
            self.logger.warning("Bundle not found", app_id=app_id, bundle_id=bundle_id)
            return None
        return Bundle.from_row(row)
