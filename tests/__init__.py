"""
Vicify Test Suite
"""
