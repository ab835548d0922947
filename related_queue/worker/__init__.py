"""
Worker module.
Contains the flush worker and the handler registry.
"""
