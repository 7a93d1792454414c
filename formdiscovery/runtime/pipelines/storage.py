"""
storage.py - Storage account discovery.

Stage order:
1. credentials  - list the account keys; the first key is the access key
2. containers   - blob containers  } issued together, awaited jointly
   file_shares  - file shares      }

The containers stage is skipped (vacuous success) when blob mounts are not
supported or the account kind cannot host blobs. The file_shares stage is
skipped for blob-only accounts.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from typing import Any, Dict, Optional, Sequence, Tuple

from ..collaborators import CapabilityFetch, CredentialLookup, first_key_value
from ..types import (
    BLOB_CAPABLE_KINDS,
    DiscoveryResult,
    GenerationTag,
    LookupStage,
    StageStatus,
    StorageAccount,
    StorageCapabilities,
    StorageKind,
)
from .base import DiscoveryPipeline

logger = logging.getLogger(__name__)

STAGE_CREDENTIALS = "credentials"
STAGE_CONTAINERS = "containers"
STAGE_FILE_SHARES = "file_shares"


def blob_stage_skipped(account: StorageAccount, supports_blob_storage: bool) -> bool:
    return not supports_blob_storage or account.kind not in BLOB_CAPABLE_KINDS


def files_stage_skipped(account: StorageAccount) -> bool:
    return account.kind == StorageKind.BLOB_STORAGE


def _item_names(data: Any) -> Tuple[str, ...]:
    if not isinstance(data, list):
        return ()
    names = []
    for item in data:
        name = item.get("name") if isinstance(item, dict) else item
        if name:
            names.append(str(name))
    return tuple(names)


class StorageDiscoveryPipeline(DiscoveryPipeline):
    """Discovers blob containers and file shares of a storage account."""

    def __init__(
        self,
        accounts: Sequence[StorageAccount],
        credentials: CredentialLookup,
        capabilities: CapabilityFetch,
        supports_blob_storage: bool = True,
        stage_timeout_s: Optional[float] = None,
    ):
        """Initialize the pipeline.

        Args:
            accounts: Storage accounts the selection key resolves against.
            credentials: Key listing collaborator.
            capabilities: Container/share listing collaborator.
            supports_blob_storage: Whether blob mounts are enabled for the site.
            stage_timeout_s: Per-call timeout override.
        """
        super().__init__(stage_timeout_s)
        self._accounts: Dict[str, StorageAccount] = {a.name: a for a in accounts}
        self._credentials = credentials
        self._capabilities = capabilities
        self._supports_blob_storage = supports_blob_storage

    @property
    def pipeline_id(self) -> str:
        return "storage"

    @property
    def supports_blob_storage(self) -> bool:
        return self._supports_blob_storage

    def failure_result(self, tag: GenerationTag, error: BaseException) -> DiscoveryResult:
        return DiscoveryResult(
            tag=tag,
            stages=(self._raised_stage(STAGE_CREDENTIALS, error),),
            capabilities=StorageCapabilities(),
        )

    async def run(self, tag: GenerationTag) -> DiscoveryResult:
        account = self._accounts.get(tag.key) if tag.key else None
        if account is None:
            logger.debug("storage: no account named %s, nothing to discover", tag.key)
            return DiscoveryResult(tag=tag)

        skip_blobs = blob_stage_skipped(account, self._supports_blob_storage)
        skip_files = files_stage_skipped(account)

        cred_stage = await self._call_stage(
            STAGE_CREDENTIALS, lambda: self._credentials.list_keys(account.id)
        )
        access_key = None
        if cred_stage.succeeded:
            try:
                access_key = first_key_value(cred_stage.data)
            except (KeyError, IndexError, TypeError, AttributeError) as e:
                cred_stage = dataclasses.replace(
                    cred_stage,
                    status=StageStatus.FAILED,
                    error_detail=f"Malformed list-keys payload: {e!r}",
                    raised=True,
                )
        if cred_stage.succeeded and access_key is None:
            cred_stage = dataclasses.replace(
                cred_stage,
                status=StageStatus.FAILED,
                error_detail="No access keys returned for the account",
            )
        if cred_stage.failed:
            logger.error(
                "listStorageKeys: Failed to get keys for %s: %s",
                account.name,
                cred_stage.error_detail,
            )
            return DiscoveryResult(
                tag=tag,
                stages=(cred_stage,),
                capabilities=StorageCapabilities(
                    blob_skipped=skip_blobs, files_skipped=skip_files
                ),
            )

        payload = {"accountName": account.name, "accessKey": access_key}

        async def fetch_containers() -> LookupStage:
            if skip_blobs:
                return LookupStage.skipped(STAGE_CONTAINERS)
            return await self._call_stage(
                STAGE_CONTAINERS,
                lambda: self._capabilities.get_containers(account.name, payload),
            )

        async def fetch_file_shares() -> LookupStage:
            if skip_files:
                return LookupStage.skipped(STAGE_FILE_SHARES)
            return await self._call_stage(
                STAGE_FILE_SHARES,
                lambda: self._capabilities.get_file_shares(account.name, payload),
            )

        blobs, files = await asyncio.gather(fetch_containers(), fetch_file_shares())

        if blobs.failed:
            logger.error(
                "getStorageContainers: Failed to get storage containers: %s",
                blobs.error_detail,
            )
        if files.failed:
            logger.error(
                "getStorageFileShares: Failed to get storage file shares: %s",
                files.error_detail,
            )

        capabilities = StorageCapabilities(
            blob_containers=_item_names(blobs.data) if blobs.succeeded else (),
            file_shares=_item_names(files.data) if files.succeeded else (),
            blob_skipped=skip_blobs,
            files_skipped=skip_files,
            access_key=access_key,
        )
        logger.info(
            "storage: %s discovered %d container(s), %d share(s)",
            tag,
            len(capabilities.blob_containers),
            len(capabilities.file_shares),
        )
        return DiscoveryResult(
            tag=tag, stages=(cred_stage, blobs, files), capabilities=capabilities
        )
