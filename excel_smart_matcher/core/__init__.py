"""
Table model and table provider interfaces for the smart matcher.
"""
