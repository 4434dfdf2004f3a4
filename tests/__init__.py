"""
ShelfSpine Test Suite
"""
