"""
Services - business rules per collection, independent of HTTP.
"""
