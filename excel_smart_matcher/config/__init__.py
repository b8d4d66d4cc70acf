"""
Matching settings and settings file loading.
"""
