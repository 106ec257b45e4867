"""
Utility modules for the listings marketplace.
"""
