from storage.object_store.buckets import (AzureBlobStore, InMemoryObjectStore,
                                          ObjectStore, StoredObject,
                                          build_object_store,)
from storage.object_store.versioning import (historical_key, next_slot,
                                             parse_version, split_key,)

__all__ = ['AzureBlobStore', 'InMemoryObjectStore', 'ObjectStore',
           'StoredObject', 'build_object_store', 'historical_key', 'next_slot',
           'parse_version', 'split_key']
