"""
HTTP surface for the visual search service
"""
