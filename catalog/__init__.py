"""
Catalog core: book and review stores, read-time aggregation and the
MongoDB persistence they share.
"""
