"""
CMR Catalog Client.

Handles HTTP communication with the CMR ingest API: publishing granule
metadata (ECHO10 XML or UMM-G JSON) and removing granules from the
catalog. Authentication uses a bearer token from CatalogConfig.

Usage:
    from infrastructure.cmr_client import CmrClient

    client = CmrClient(config.catalog)
    cmr_link = client.publish_granule(granule, metadata_bytes, MetadataFormat.ECHO10_XML)
"""

import xml.etree.ElementTree as ET
from typing import Dict, Optional

import httpx

from config import CatalogConfig
from core.models import GranuleRecord, MetadataFormat
from exceptions import CatalogError
from interfaces.repository import ICatalogClient
from util_logger import LoggerFactory, ComponentType

logger = LoggerFactory.create_logger(ComponentType.ADAPTER, "CmrClient")


_CONTENT_TYPES = {
    MetadataFormat.ECHO10_XML: "application/echo10+xml",
    MetadataFormat.UMMG_JSON: "application/vnd.nasa.cmr.umm+json",
}


class CmrClient(ICatalogClient):
    """
    Client for CMR ingest calls.

    Handles:
    - Bearer token and Client-Id headers
    - PUT/DELETE against /ingest/providers/{provider}/granules/{granuleId}
    - Translating every failure into CatalogError
    """

    def __init__(self, config: CatalogConfig, http_client: Optional[httpx.Client] = None):
        """
        Args:
            config: CMR settings
            http_client: Pre-built client (tests use httpx.MockTransport)
        """
        self._config = config
        self._base_url = config.base_url.rstrip('/')
        self._http_client = http_client

    def _headers(self, content_type: Optional[str] = None) -> Dict[str, str]:
        headers = {"Client-Id": self._config.client_id, "Accept": "application/json"}
        if self._config.token:
            headers["Authorization"] = f"Bearer {self._config.token}"
        if content_type:
            headers["Content-Type"] = content_type
        return headers

    def _granule_url(self, granule_id: str) -> str:
        if not self._config.provider:
            raise CatalogError("CMR provider is not configured")
        return f"{self._base_url}/ingest/providers/{self._config.provider}/granules/{granule_id}"

    def _client(self) -> httpx.Client:
        if self._http_client is not None:
            return self._http_client
        return httpx.Client(timeout=float(self._config.timeout_seconds))

    @staticmethod
    def _concept_id(response: httpx.Response) -> Optional[str]:
        """concept-id from a JSON or XML ingest response."""
        content_type = response.headers.get("content-type", "")
        if "json" in content_type:
            return response.json().get("concept-id")
        try:
            root = ET.fromstring(response.content)
        except ET.ParseError:
            return None
        node = root.find("concept-id")
        return node.text if node is not None else None

    def publish_granule(
        self,
        granule: GranuleRecord,
        metadata: bytes,
        metadata_format: MetadataFormat
    ) -> str:
        """
        Publish (or re-publish) granule metadata.

        PUT /ingest/providers/{provider}/granules/{granuleId}

        Returns:
            cmr_link pointing at the concept in CMR search

        Raises:
            CatalogError: On transport failure or non-2xx response
        """
        url = self._granule_url(granule.granule_id)
        logger.info(f"Publishing granule {granule.granule_id} to CMR ({metadata_format.value})")

        client = self._client()
        try:
            response = client.put(
                url,
                content=metadata,
                headers=self._headers(_CONTENT_TYPES[metadata_format])
            )
            response.raise_for_status()
            concept_id = self._concept_id(response)
        except httpx.HTTPStatusError as e:
            logger.error(
                f"CMR publish rejected for {granule.granule_id}: "
                f"{e.response.status_code} {e.response.text[:500]}"
            )
            raise CatalogError(
                f"CMR publish failed for {granule.granule_id}: HTTP {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"CMR unreachable publishing {granule.granule_id}: {e}")
            raise CatalogError(f"CMR publish failed for {granule.granule_id}: {e}") from e
        finally:
            if client is not self._http_client:
                client.close()

        if concept_id:
            cmr_link = f"{self._base_url}/search/concepts/{concept_id}"
        else:
            cmr_link = (
                f"{self._base_url}/search/granules.json"
                f"?provider={self._config.provider}&granule_ur={granule.granule_id}"
            )
        logger.info(f"Published granule {granule.granule_id}: {cmr_link}")
        return cmr_link

    def delete_granule(self, granule: GranuleRecord) -> None:
        """
        Remove a granule from CMR.

        DELETE /ingest/providers/{provider}/granules/{granuleId}
        A 404 means it is already gone and is not an error.

        Raises:
            CatalogError: On transport failure or other non-2xx response
        """
        url = self._granule_url(granule.granule_id)
        logger.info(f"Removing granule {granule.granule_id} from CMR")

        client = self._client()
        try:
            response = client.delete(url, headers=self._headers())
            if response.status_code == 404:
                logger.warning(f"Granule {granule.granule_id} not found in CMR, treating as removed")
                return
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(
                f"CMR delete rejected for {granule.granule_id}: {e.response.status_code}"
            )
            raise CatalogError(
                f"CMR delete failed for {granule.granule_id}: HTTP {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"CMR unreachable deleting {granule.granule_id}: {e}")
            raise CatalogError(f"CMR delete failed for {granule.granule_id}: {e}") from e
        finally:
            if client is not self._http_client:
                client.close()
