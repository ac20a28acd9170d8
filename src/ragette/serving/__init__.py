"""
Serving — FastAPI application for ingestion and streaming chat.

``uvicorn ragette.serving.app:app`` runs the API against the Chroma and
OpenAI endpoints configured in :mod:`ragette.config`.
"""
