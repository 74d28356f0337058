"""
API schemas
"""
