"""Unit tests for individual components in isolation.

Coverage:
    - parsing/: Text extraction and chunking logic
    - retrieval/: Embeddings, vector store, classifier and context assembly
    - agent/: Configuration, tools, conversation engine and service facade
    - streaming/: Event encoding and the event sink
    - storage/: Document metadata persistence

Uses fakes for external services. Leverages pytest-check for multiple
assertions per test.
"""
