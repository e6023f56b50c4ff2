"""
Ingestion — PDF extraction, chunking, embedding and atomic storage.

This package turns raw document text into embedded chunks stored in the
chunk store.  A document is either stored completely or not at all.
"""
