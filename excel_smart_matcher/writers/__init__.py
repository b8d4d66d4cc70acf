"""
Writers that place result blocks into workbooks.
"""
