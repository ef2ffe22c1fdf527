from .vector_store_es import BillVectorStoreES

__all__ = ['BillVectorStoreES']
