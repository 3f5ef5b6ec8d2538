"""
Services: external data clients and the ingestion jobs.
"""
