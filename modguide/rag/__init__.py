"""
RAG (Retrieval Augmented Generation) module for the moderator knowledge base.

This package turns the knowledge-base content into an in-memory vector
index and assembles bounded, source-cited context for the assistant.

Components:
    - chunker: Renders content units to text and splits them into chunks
    - embedder: Mock (hashed) or OpenAI text-embedding-3-small embeddings
    - vector_store: In-memory chunk + embedding store with cosine search
    - retriever: Context assembly, source citations and confidence levels
"""
