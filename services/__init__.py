"""
Storage, detection, crop and search clients plus the aggregation pipeline
"""
