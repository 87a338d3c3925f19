"""FastAPI endpoints for document Q&A.

HTTP and streaming routes with async request handling. Answers are
streamed as Server-Sent Events.

Endpoints:
    - GET /health: Service health status
    - POST /chat/stream: Streamed answer to a question
    - POST /upload: Document upload and background indexing
    - GET /documents: Uploaded documents
    - GET /documents/stats: Chunk counts per indexed document
    - GET /documents/{id}: Document metadata with extracted text
    - GET /documents/{id}/file: Original uploaded file
    - DELETE /documents/{id}: Remove a document and its index
    - POST /search: Direct semantic search
"""
