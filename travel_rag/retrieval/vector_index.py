"""
Vector Index
Hotel vectors in Qdrant
"""

import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from loguru import logger
from qdrant_client import AsyncQdrantClient
from qdrant_client.models import Distance, PointStruct, VectorParams

from ..errors import DependencyError
from ..schemas.ai_schemas import VectorMatch


@dataclass
class VectorRecord:
    """A vector to upsert, keyed by the hotel's own id"""
    id: str
    vector: List[float]
    metadata: Dict[str, Any] = field(default_factory=dict)


def point_id(record_id: str) -> str:
    """Qdrant point ids must be UUIDs or ints; derive a stable UUID from the hotel id"""
    return str(uuid.uuid5(uuid.NAMESPACE_URL, f"hotel:{record_id}"))


class VectorIndex:
    """
    Qdrant-backed hotel index.

    The collection is created on the first upsert, sized from the first
    vector. Upserts are idempotent by hotel id; the original id is kept in
    the payload under `hotel_id` and returned as the match id.

    Usage:
        index = VectorIndex(settings.QDRANT_URL, "mexico-hotels")
        matches = await index.query(vector, top_k=15)
    """

    def __init__(
        self,
        url: str,
        collection: str,
        api_key: Optional[str] = None,
        client: Optional[AsyncQdrantClient] = None,
    ):
        self.url = url
        self.collection = collection
        self.client = client or AsyncQdrantClient(url=url, api_key=api_key)
        self._collection_ready = False

    async def query(self, vector: List[float], top_k: int) -> List[VectorMatch]:
        """
        Nearest hotels to `vector`, most relevant first

        Raises:
            DependencyError: Qdrant failed
        """
        try:
            response = await self.client.query_points(
                collection_name=self.collection,
                query=vector,
                limit=top_k,
                with_payload=True,
            )
        except Exception as e:
            raise DependencyError("vector_index", str(e)) from e

        matches = []
        for point in response.points:
            payload = dict(point.payload or {})
            matches.append(VectorMatch(
                id=str(payload.get("hotel_id", point.id)),
                score=float(point.score),
                metadata=payload,
            ))
        return matches

    async def upsert(self, records: List[VectorRecord]):
        """
        Insert or replace vectors

        Raises:
            DependencyError: Qdrant failed
        """
        if not records:
            return
        try:
            await self._ensure_collection(len(records[0].vector))
            await self.client.upsert(
                collection_name=self.collection,
                points=[
                    PointStruct(
                        id=point_id(record.id),
                        vector=record.vector,
                        payload={**record.metadata, "hotel_id": record.id},
                    )
                    for record in records
                ],
            )
        except DependencyError:
            raise
        except Exception as e:
            raise DependencyError("vector_index", str(e)) from e
        logger.debug(f"Upserted {len(records)} vectors into '{self.collection}'")

    async def _ensure_collection(self, dimensions: int):
        if self._collection_ready:
            return
        if not await self.client.collection_exists(self.collection):
            await self.client.create_collection(
                collection_name=self.collection,
                vectors_config=VectorParams(size=dimensions, distance=Distance.COSINE),
            )
            logger.info(f"Created Qdrant collection '{self.collection}' ({dimensions} dims)")
        self._collection_ready = True

    async def ping(self) -> bool:
        """Health check, never raises"""
        try:
            await self.client.get_collections()
            return True
        except Exception as e:
            logger.warning(f"Qdrant health check failed: {e}")
            return False

    async def close(self):
        await self.client.close()
