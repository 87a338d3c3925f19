"""Integration tests for components working together as a system.

Coverage:
    - Streaming chat endpoint event sequences
    - Upload, listing, deletion and statistics of documents
    - Direct semantic search
    - Live LLM answers (when OPENAI_API_KEY is configured)

Slower than unit tests but provides higher confidence.
"""
