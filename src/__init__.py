"""Document Q&A - Retrieval-Augmented Generation over uploaded documents.

Combines FastAPI for HTTP streaming, the OpenAI API for embeddings and
tool-calling chat, LanceDB for vector storage, and Pydantic for data
validation.

Components:
    - api: HTTP endpoints and streaming responses
    - agent: Conversation engine, web search tool and service facade
    - retrieval: Embeddings, vector store, query classification, context assembly
    - parsing: Text extraction and chunking
    - streaming: Server-sent event types and the per-response event sink
    - storage: Uploaded files and document metadata
    - models: Request/response schemas
"""

__version__ = "0.1.0"
