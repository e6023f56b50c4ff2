"""
Serving — FastAPI application for the RAG service.

This module exposes ingestion and question answering over HTTP so the
service can run as a standalone container (``python -m
rag_playground.serving.app``).
"""
