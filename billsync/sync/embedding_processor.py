"""
Embedding generation and upload of bill records to the vector index.

Records are embedded with OpenAI and upserted in fixed-size batches under an
id derived from the bill title, so re-uploading a bill replaces its vector
instead of adding a second one.
"""

import random
import re
import string
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from openai import OpenAI

from ..config import (
    DEFAULT_EMBEDDING_METRIC, DEFAULT_EMBEDDING_MODEL, DEFAULT_EMBEDDING_SIZE,
    DEFAULT_INDEX_SETTLE_SECONDS, DEFAULT_UPLOAD_BATCH_SIZE,
)
from .config import IndexConfig
from .error_tracker import EmbeddingError, UploadError
from .logging_manager import get_logger
from .models import BillRecord, VectorRecord

logger = get_logger(__name__)

_WHITESPACE = re.compile(r"\s+")
_ID_ALPHABET = string.digits + string.ascii_lowercase


class OpenAIEmbedder:
    """Turns texts into embedding vectors, one request per batch."""

    def __init__(self, client: OpenAI, model: str = DEFAULT_EMBEDDING_MODEL):
        self.client = client
        self.model = model

    def embed_batch(self, texts: List[str]) -> List[List[float]]:
        try:
            response = self.client.embeddings.create(input=texts, model=self.model)
        except Exception as e:
            raise EmbeddingError(f"OpenAI API error while embedding {len(texts)} texts: {e}", operation="embed")
        embeddings = [item.embedding for item in response.data]
        if len(embeddings) != len(texts):
            raise EmbeddingError(f"Expected {len(texts)} embeddings, got {len(embeddings)}", operation="embed")
        return embeddings


def compose_embedding_text(record: BillRecord) -> str:
    """Title, description and any extended content, space separated."""
    parts = [record.title, record.description, record.content]
    text = " ".join(part for part in parts if part).strip()
    # The embeddings endpoint rejects empty input.
    return text or record.source_url or "untitled bill"


def derive_vector_id(title: str) -> str:
    """
    Lowercased title with whitespace runs replaced by hyphens.

    Untitled records get a timestamp and random suffix instead, so their ids
    differ between runs and re-uploading them adds new vectors.
    """
    if title:
        return _WHITESPACE.sub("-", title).lower()
    suffix = "".join(random.choices(_ID_ALPHABET, k=9))
    return f"bill-{int(time.time() * 1000)}-{suffix}"


def build_vector_record(record: BillRecord, embedding: List[float]) -> VectorRecord:
    return VectorRecord(
        id=derive_vector_id(record.title),
        embedding=embedding,
        metadata={
            'title': record.title,
            'description': record.description,
            'sourceUrl': record.source_url,
            'issuedDate': record.issued_date,
            'content': record.content,
        },
    )


@dataclass
class UploadResult:
    total_records: int
    uploaded: int
    batches: int
    index_created: bool = False
    processing_time: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'total_records': self.total_records,
            'uploaded': self.uploaded,
            'batches': self.batches,
            'index_created': self.index_created,
            'processing_time': self.processing_time,
        }


class UploadSynchronizer:
    """
    Pushes bill records into the destination index.

    A failing batch is not retried: it raises `UploadError` and the remaining
    batches are not attempted.
    """

    def __init__(self, vector_store, embedder: OpenAIEmbedder, index_name: str,
                 dimension: int = DEFAULT_EMBEDDING_SIZE,
                 metric: str = DEFAULT_EMBEDDING_METRIC,
                 namespace: str = '',
                 batch_size: int = DEFAULT_UPLOAD_BATCH_SIZE,
                 settle_seconds: float = DEFAULT_INDEX_SETTLE_SECONDS):
        self.vector_store = vector_store
        self.embedder = embedder
        self.index_name = index_name
        self.dimension = dimension
        self.metric = metric
        self.namespace = namespace
        self.batch_size = batch_size
        self.settle_seconds = settle_seconds

    @classmethod
    def from_config(cls, vector_store, embedder: OpenAIEmbedder, index_config: IndexConfig,
                    index_name: Optional[str] = None) -> 'UploadSynchronizer':
        return cls(
            vector_store,
            embedder,
            index_name or index_config.name,
            dimension=index_config.dimension,
            metric=index_config.metric,
            namespace=index_config.namespace,
            batch_size=index_config.batch_size,
            settle_seconds=index_config.settle_seconds,
        )

    def ensure_index(self) -> bool:
        """Create the index when missing. Returns True when it was created."""
        if self.vector_store.index_exists(self.index_name):
            return False
        logger.info(f"Index '{self.index_name}' does not exist, creating it")
        self.vector_store.create_index(self.index_name, dimension=self.dimension, metric=self.metric)
        if self.settle_seconds:
            logger.info(f"Waiting {self.settle_seconds}s for index '{self.index_name}' to be ready")
            time.sleep(self.settle_seconds)
        return True

    def upload(self, records: Sequence[BillRecord]) -> UploadResult:
        start_time = time.time()
        records = list(records)
        total_batches = (len(records) + self.batch_size - 1) // self.batch_size
        result = UploadResult(total_records=len(records), uploaded=0, batches=0)

        if not records:
            logger.info("No records to upload")
            return result

        result.index_created = self.ensure_index()
        logger.info(f"Uploading {len(records)} records to '{self.index_name}' in {total_batches} batches")

        for start in range(0, len(records), self.batch_size):
            batch = records[start:start + self.batch_size]
            batch_number = start // self.batch_size + 1
            try:
                embeddings = self.embedder.embed_batch([compose_embedding_text(r) for r in batch])
                vectors = [build_vector_record(r, e) for r, e in zip(batch, embeddings)]
                self.vector_store.upsert(self.index_name, vectors, namespace=self.namespace)
            except Exception as e:
                logger.error(
                    f"Error upserting batch {batch_number}/{total_batches}: {e}",
                    extra={'details': {
                        'index': self.index_name,
                        'batch_number': batch_number,
                        'first_id': derive_vector_id(batch[0].title),
                        'operation': 'upload',
                    }},
                )
                raise UploadError(
                    f"Batch {batch_number}/{total_batches} failed: {e}",
                    batch_number=batch_number,
                    uploaded=result.uploaded,
                ) from e

            result.uploaded += len(batch)
            result.batches += 1
            logger.info(f"Upserted batch {batch_number}/{total_batches} ({result.uploaded}/{len(records)} records)")

        result.processing_time = time.time() - start_time
        logger.info(f"Successfully uploaded {result.uploaded} records to '{self.index_name}'")
        return result
