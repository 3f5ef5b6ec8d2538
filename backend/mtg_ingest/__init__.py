"""
Commander and card price ingestion for the MTG inventory.
"""
__version__ = "1.0.0"
