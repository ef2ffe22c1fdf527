from datetime import datetime, timezone
from typing import List, Dict, Any

from elasticsearch import Elasticsearch
from elasticsearch.helpers import bulk

from ..config import DEFAULT_EMBEDDING_METRIC, DEFAULT_EMBEDDING_SIZE, ElasticsearchConfig, get_logger
from ..sync.models import VectorRecord

logger = get_logger(__name__)


class BillVectorStoreES:
    """
    Vector index of bills backed by Elasticsearch `dense_vector` fields.

    Each document holds one embedding, the bill metadata and a namespace
    keyword, so the index can report per-namespace record counts.
    """

    def __init__(self, es_client: Elasticsearch, host: str = ''):
        self.es_client = es_client
        self.host = host

    @classmethod
    def from_environment(cls, environment: str) -> 'BillVectorStoreES':
        es_config = ElasticsearchConfig.from_environment(environment)
        es_kwargs = es_config.to_elasticsearch_kwargs()

        logger.info(f"Connecting to Elasticsearch at {es_config.host} for {environment} environment")
        es_client = Elasticsearch(**es_kwargs)
        try:
            if not es_client.ping():
                raise ConnectionError("Could not ping Elasticsearch")
            info = es_client.info()
            logger.info(f"Connected to Elasticsearch version {info['version']['number']}")
        except Exception as e:
            logger.error(f"Failed to connect to Elasticsearch: {str(e)}")
            raise ConnectionError(f"Could not connect to Elasticsearch: {str(e)}")
        return cls(es_client, host=es_config.host)

    def list_indexes(self) -> List[Dict[str, str]]:
        """User indexes as `{name, host}` dicts."""
        aliases = self.es_client.indices.get_alias(index="*")
        return [
            {'name': name, 'host': self.host}
            for name in sorted(aliases)
            if not name.startswith('.')
        ]

    def index_exists(self, index_name: str) -> bool:
        return bool(self.es_client.indices.exists(index=index_name))

    def create_index(self, index_name: str, dimension: int = DEFAULT_EMBEDDING_SIZE,
                     metric: str = DEFAULT_EMBEDDING_METRIC) -> None:
        logger.info(f"Creating index: {index_name}", extra={'details': {'dimension': dimension, 'metric': metric}})
        self.es_client.indices.create(
            index=index_name,
            mappings={
                "properties": {
                    "embedding": {
                        "type": "dense_vector",
                        "dims": dimension,
                        "index": True,
                        "similarity": metric
                    },
                    "namespace": {"type": "keyword"},
                    "indexed_at": {"type": "date"},
                    "metadata": {
                        "type": "object",
                        "dynamic": True,
                        "properties": {
                            "title": {
                                "type": "text",
                                "fields": {"keyword": {"type": "keyword", "ignore_above": 256}}
                            },
                            "description": {"type": "text"},
                            "sourceUrl": {"type": "keyword"},
                            "issuedDate": {"type": "keyword"},
                            "content": {"type": "text"}
                        }
                    }
                }
            },
            settings={"number_of_shards": 1, "number_of_replicas": 0},
        )

    def describe_index_stats(self, index_name: str) -> Dict[str, Any]:
        """
        Returns `{totalRecordCount, dimension, namespaces}` where
        `namespaces` maps each namespace to `{recordCount}`.
        """
        total = self.es_client.count(index=index_name).get('count', 0)

        dimension = None
        mapping = self.es_client.indices.get_mapping(index=index_name)
        properties = mapping.get(index_name, {}).get('mappings', {}).get('properties', {})
        if 'embedding' in properties:
            dimension = properties['embedding'].get('dims')

        response = self.es_client.search(
            index=index_name,
            size=0,
            aggs={"namespaces": {"terms": {"field": "namespace", "size": 100, "missing": ""}}},
        )
        buckets = response.get('aggregations', {}).get('namespaces', {}).get('buckets', [])
        namespaces = {b['key']: {'recordCount': b['doc_count']} for b in buckets}

        return {
            'totalRecordCount': total,
            'dimension': dimension,
            'namespaces': namespaces,
        }

    def upsert(self, index_name: str, records: List[VectorRecord], namespace: str = '') -> int:
        """
        Index `records` by id, replacing documents with the same id.
        Any failed item raises `elasticsearch.helpers.BulkIndexError`.
        """
        indexed_at = datetime.now(timezone.utc).isoformat()
        actions = [
            {
                "_op_type": "index",
                "_index": index_name,
                "_id": record.id,
                "_source": {
                    "embedding": record.embedding,
                    "metadata": record.metadata,
                    "namespace": namespace,
                    "indexed_at": indexed_at,
                }
            }
            for record in records
        ]
        success_count, _ = bulk(self.es_client, actions, raise_on_error=True, refresh='wait_for')
        return success_count

    def query(self, index_name: str, vector: List[float], top_k: int = 5,
              include_metadata: bool = True) -> List[Dict[str, Any]]:
        """Nearest neighbours of `vector` as `{id, score, metadata}` matches."""
        response = self.es_client.search(
            index=index_name,
            size=top_k,
            knn={
                "field": "embedding",
                "query_vector": vector,
                "k": top_k,
                "num_candidates": max(100, top_k),
            },
            source=["metadata"] if include_metadata else False,
        )
        matches = []
        for hit in response['hits']['hits']:
            match = {'id': hit['_id'], 'score': hit.get('_score')}
            if include_metadata:
                match['metadata'] = hit.get('_source', {}).get('metadata', {})
            matches.append(match)
        return matches

    def delete(self, index_name: str, ids: List[str]) -> int:
        """Delete documents by id; missing ids are logged and skipped."""
        actions = [{"_op_type": "delete", "_index": index_name, "_id": doc_id} for doc_id in ids]
        deleted, errors = bulk(self.es_client, actions, raise_on_error=False, refresh='wait_for')
        for error in errors:
            logger.warning(f"Could not delete vector: {error}")
        return deleted

    def close(self) -> None:
        self.es_client.close()
