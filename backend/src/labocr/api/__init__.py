"""
API package - HTTP surface for the extraction pipeline.
"""
