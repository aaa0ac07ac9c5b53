"""
API layer for the Quiz PDF Extractor
"""
