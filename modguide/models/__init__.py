"""Content and retrieval data types."""
