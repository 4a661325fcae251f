"""
Knowledge-base content: loading from the content store and keyword search.
"""
